from __future__ import annotations

import pytest

import utils


def test_format_currency():
    assert utils.format_currency(1500) == "₹1,500"
    assert utils.format_currency("250.5", "Rs.") == "Rs.250.50"


def test_contact_requires_name_and_phone():
    assert utils.validate_contact_inputs("", "123") == ["Name and phone are required"]
    assert utils.validate_contact_inputs("Ram", "123") == []
    assert utils.validate_contact_inputs("Ram", "123", "2024-13-01") != []


@pytest.mark.parametrize("contact, entry, amount", [(None, 1, "10"), (1, "", "10"), (1, 1, "")])
def test_donation_required_fields(contact, entry, amount):
    assert utils.validate_donation_inputs(contact, entry, amount, True) == [
        "Contact, Ekadashi, and Amount are required"
    ]


def test_donation_requires_transfer_confirmation():
    assert utils.validate_donation_inputs(1, 1, "100", False) == [
        "Please confirm that the donation has been transferred before saving."
    ]


@pytest.mark.parametrize("amount", ["-5", "0", "abc", "NaN"])
def test_donation_amount_must_be_positive(amount):
    assert "Amount must be a positive number." in utils.validate_donation_inputs(1, 1, amount, True)


def test_valid_donation():
    assert utils.validate_donation_inputs(1, 2, "251", True, "2024-03-01") == []
