"""Tests for input normalization"""

from unittest import TestCase

from sahal.utils.validators import normalize_phone, normalize_text, validate_months_purchased

class NormalizePhoneTest(TestCase):

    def test_accepted_formats_share_one_canonical_form(self):
        for raw in ("+252612345678", "252612345678", "612345678", "0612345678", "+252 61 234 5678"):
            self.assertEqual(normalize_phone(raw), "+252612345678", raw)

    def test_other_international_numbers_pass_through(self):
        self.assertEqual(normalize_phone("+254712345678"), "+254712345678")

    def test_invalid_numbers_raise(self):
        for raw in ("", "   ", "12345", "abc"):
            with self.assertRaises(ValueError):
                normalize_phone(raw)

class MonthsPurchasedTest(TestCase):

    def test_bounds(self):
        self.assertEqual(validate_months_purchased(1), 1)
        self.assertEqual(validate_months_purchased(120), 120)
        with self.assertRaises(ValueError):
            validate_months_purchased(0)
        with self.assertRaises(ValueError):
            validate_months_purchased(121)

class NormalizeTextTest(TestCase):

    def test_collapses_whitespace(self):
        self.assertEqual(normalize_text("  Hodan \t  Ali \n"), "Hodan Ali")
