"""Field rules shared by user and store schemas."""

import re
from typing import Annotated

from pydantic import AfterValidator, EmailStr

USER_NAME_MIN = 20
USER_NAME_MAX = 60
STORE_NAME_MAX = 60
ADDRESS_MAX = 400
PASSWORD_MIN = 8
PASSWORD_MAX = 16

_UPPERCASE = re.compile(r"[A-Z]")
_SPECIAL = re.compile(r"[^A-Za-z0-9]")


def _user_name(value: str) -> str:
    value = value.strip()
    if not USER_NAME_MIN <= len(value) <= USER_NAME_MAX:
        raise ValueError(
            f"Name must be between {USER_NAME_MIN} and {USER_NAME_MAX} characters"
        )
    return value


def _store_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Store name is required")
    if len(value) > STORE_NAME_MAX:
        raise ValueError(f"Store name must not exceed {STORE_NAME_MAX} characters")
    return value


def _address(value: str) -> str:
    value = value.strip()
    if len(value) > ADDRESS_MAX:
        raise ValueError(f"Address must not exceed {ADDRESS_MAX} characters")
    return value


def _password(value: str) -> str:
    if not PASSWORD_MIN <= len(value) <= PASSWORD_MAX:
        raise ValueError(
            f"Password must be {PASSWORD_MIN}-{PASSWORD_MAX} characters long"
        )
    if not _UPPERCASE.search(value):
        raise ValueError("Password must include at least one uppercase letter")
    if not _SPECIAL.search(value):
        raise ValueError("Password must include at least one special character")
    return value


UserName = Annotated[str, AfterValidator(_user_name)]
StoreName = Annotated[str, AfterValidator(_store_name)]
Address = Annotated[str, AfterValidator(_address)]
Password = Annotated[str, AfterValidator(_password)]
Email = Annotated[EmailStr, AfterValidator(str.lower)]
