"""Tests for settings parsing."""

import pytest
from pydantic import ValidationError

from promofinder.config import Settings


class TestSettings:

    def test_list_helpers(self):
        settings = Settings(
            _env_file=None,
            ENABLED_SOURCES=" feed, rapidapi ,,",
            SOURCE_DAILY_LIMITS="rapidapi=250, rainforest = 50, broken, bad=x",
            REFRESH_QUERIES="nike sneakers, adidas",
        )

        assert settings.get_enabled_sources() == ["feed", "rapidapi"]
        assert settings.get_daily_limits() == {"rapidapi": 250, "rainforest": 50}
        assert settings.get_refresh_queries() == ["nike sneakers", "adidas"]

    def test_empty_lists(self):
        settings = Settings(_env_file=None, ENABLED_SOURCES="", REFRESH_QUERIES="")

        assert settings.get_enabled_sources() == []
        assert settings.get_refresh_queries() == []

    def test_discount_bounds_checked(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, DISCOUNT_FLOOR=60, DISCOUNT_CEILING=50)

    def test_negative_daily_limit_ignored(self):
        settings = Settings(_env_file=None, SOURCE_DAILY_LIMITS="rapidapi=-1,feed=0")

        assert settings.get_daily_limits() == {"feed": 0}
