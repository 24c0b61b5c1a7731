"""Unit tests for agents/BookingAgent.py"""
import os
from datetime import date, timedelta
from unittest.mock import patch
from urllib.parse import parse_qs, unquote, urlparse

import pytest

import BookingAgent as ba
from TravelPlan import LocationRecommendation


def _rec(area="Hongdae", city="Seoul"):
    return LocationRecommendation(area=area, city=city, reason="")


class TestDateRange:
    def test_adds_duration(self):
        assert ba.date_range("2026-06-01", 3) == ("2026-06-01", "2026-06-04")

    def test_crosses_month_end(self):
        assert ba.date_range("2026-01-30", 3) == ("2026-01-30", "2026-02-02")

    def test_invalid_date_starts_today(self):
        check_in, check_out = ba.date_range("next friday", 2)
        assert check_in == date.today().isoformat()
        assert check_out == (date.today() + timedelta(days=2)).isoformat()


class TestCleanLocation:
    @pytest.mark.parametrize("raw, expected", [
        ("de Mars", "Mars"),
        ("The Marais", "Marais"),
        ("Louvre nearby", "Louvre"),
        ("에펠탑 근처", "에펠탑"),
        ("Linear Park", "Linear Park"),
        ("  Hongdae  ", "Hongdae"),
    ])
    def test_cleaning(self, raw, expected):
        assert ba.clean_location(raw) == expected


class TestSearchQuery:
    def test_city_prefixed(self):
        assert ba.search_query("Hongdae", "Seoul") == "Seoul Hongdae"

    def test_area_already_leads_with_city(self):
        assert ba.search_query("Seoul Forest", "Seoul") == "Seoul Forest"

    def test_default_city_is_dropped(self):
        assert ba.search_query("Hongdae", "downtown") == "Hongdae"

    def test_default_area_keeps_city(self):
        assert ba.search_query("도심", "수원") == "수원"

    def test_street_address_gets_city(self):
        assert ba.search_query("정조로 833", "수원") == "수원 정조로 833"


class TestAccommodationSearchUrl:
    def test_airbnb(self):
        url = ba.accommodation_search_url(_rec(), "airbnb", "2026-06-01", 3, 2, partner_id="")
        parsed = urlparse(url)
        assert parsed.netloc == "www.airbnb.co.kr"
        assert unquote(parsed.path) == "/s/Seoul Hongdae/homes"
        params = parse_qs(parsed.query)
        assert params["checkin"] == ["2026-06-01"]
        assert params["checkout"] == ["2026-06-04"]
        assert params["adults"] == ["2"]
        assert "partner" not in params

    def test_airbnb_partner_from_env(self):
        with patch.dict(os.environ, {"AIRBNB_PARTNER_ID": "p123"}):
            url = ba.accommodation_search_url(_rec(), "airbnb", "2026-06-01", 3, 2)
        assert parse_qs(urlparse(url).query)["partner"] == ["p123"]

    def test_google_hotels(self):
        url = ba.accommodation_search_url(_rec("de Mars", "Paris"), "google_hotels",
                                          "2026-06-01", 2, 1)
        params = parse_qs(urlparse(url).query)
        assert params["q"] == ["Hotels in Mars, Paris"]
        assert params["checkout"] == ["2026-06-03"]

    def test_google_hotels_city_only(self):
        url = ba.accommodation_search_url(_rec("downtown", "Paris"), "google_hotels",
                                          "2026-06-01", 2, 1)
        assert parse_qs(urlparse(url).query)["q"] == ["Hotels in Paris"]

    def test_adults_at_least_one(self):
        url = ba.accommodation_search_url(_rec(), "google_hotels", "2026-06-01", 2, 0)
        assert parse_qs(urlparse(url).query)["adults"] == ["1"]

    def test_unknown_platform(self):
        with pytest.raises(ValueError):
            ba.accommodation_search_url(_rec(), "booking", "2026-06-01", 2, 1)


def test_booking_links_cover_every_platform(profile):
    links = ba.booking_links(_rec(), profile)
    assert set(links) == set(ba.PLATFORMS)
    assert all(url.startswith("https://") for url in links.values())
