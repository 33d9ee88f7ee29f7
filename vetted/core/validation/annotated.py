"""Annotated Rule Aliases

Ready-made ``Annotated`` types for common constraints. Nested Annotated
types flatten, so aliases compose with further rules and messages.

Usage:
    from vetted.core.validation.annotated import Email, PositiveInt, NonEmptyStr

    @dataclass
    class UserCreate:
        email: Email
        username: Annotated[NonEmptyStr, String(length=(3, 50)), Message("invalid username")]
        age: PositiveInt
"""
from __future__ import annotations

from typing import Annotated

from .formats import Pattern, StringFormat
from .rules import Float, FloatKind, Integer, Sign, String

# Strings
NonEmptyStr = Annotated[str, String(length=(1, None))]
Email = Annotated[str, String(format=StringFormat.EMAIL)]
Url = Annotated[str, String(format=StringFormat.URL)]
UuidStr = Annotated[str, String(format=StringFormat.UUID)]
Ipv4 = Annotated[str, String(format=StringFormat.IPV4)]
Ipv6 = Annotated[str, String(format=StringFormat.IPV6)]
DateTimeStr = Annotated[str, String(format=StringFormat.DATETIME)]
Slug = Annotated[str, String(format=Pattern(r"^[a-z0-9]+(?:-[a-z0-9]+)*$", description="slug"))]

# Integers
PositiveInt = Annotated[int, Integer(sign=Sign.POSITIVE)]
NonNegativeInt = Annotated[int, Integer(sign=Sign.NON_NEGATIVE)]
Port = Annotated[int, Integer(size=(1, 65535))]

# Floats
FiniteFloat = Annotated[float, Float(kind=FloatKind.FINITE)]
PositiveFloat = Annotated[float, Float(sign=Sign.POSITIVE, kind=FloatKind.FINITE)]
NonNegativeFloat = Annotated[float, Float(sign=Sign.NON_NEGATIVE)]
Percentage = Annotated[float, Float(size=(0.0, 100.0))]
UnitInterval = Annotated[float, Float(size=(0.0, 1.0))]
