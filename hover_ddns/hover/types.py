"""
Wire models for the Hover record API.

The record listing nests entries under a field called ``domains`` just like
the domain listing does. That shape is what the server sends and is kept as is.
"""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field

RECORD_TTL = 3600


class DomainEntry(BaseModel):
    id: str
    domain_name: str


class DomainEnvelope(BaseModel):
    succeeded: bool
    domains: list[DomainEntry] = Field(default_factory=list)


class RecordEntry(BaseModel):
    id: str
    name: str
    type: str
    content: str = ""


class RecordDomain(BaseModel):
    entries: list[RecordEntry] = Field(default_factory=list)


class RecordEnvelope(BaseModel):
    succeeded: bool
    domains: list[RecordDomain] = Field(default_factory=list)


class CreateRecord(BaseModel):
    name: str
    type: Literal["A", "AAAA"]
    content: str
    ttl: int = RECORD_TTL


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str


@dataclass(frozen=True)
class HoverSession:
    """The two cookies every authenticated request must carry"""

    session_cookie: Cookie
    auth_cookie: Cookie

    def cookie_header(self) -> str:
        return "; ".join(
            f"{cookie.name}={cookie.value}"
            for cookie in (self.session_cookie, self.auth_cookie)
        )


@dataclass(frozen=True)
class Unauthenticated:
    pass


@dataclass(frozen=True)
class Authenticated:
    session: HoverSession


SessionState = Unauthenticated | Authenticated
