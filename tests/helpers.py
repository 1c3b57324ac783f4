"""
Plain helpers shared by the test modules.
"""

from typing import Any

STRONG_PASSWORD = "P@ssw0rd1"


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def registration_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "fullName": "Jane Doe",
        "email": "jane@x.com",
        "password": STRONG_PASSWORD,
        "confirmPassword": STRONG_PASSWORD,
        "phoneNumber": "+234 801 234 5678",
        "agreedToTerms": True,
    }
    payload.update(overrides)
    return payload


def store_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "name": "Ikeja Branch",
        "email": "ikeja@shop.com",
        "phoneNumber": "+2348011111111",
        "address": {"street": "1 Allen Ave", "city": "Ikeja", "state": "Lagos"},
        "currency": "NGN",
        "taxRate": 7.5,
    }
    payload.update(overrides)
    return payload
