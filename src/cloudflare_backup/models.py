"""
Data models for Cloudflare Backup.

This module defines the response envelope returned by every CloudFlare API v4
call, the zone, DNS record and page rule payloads carried inside it, and the
enumeration used to choose how a run reacts to a failed zone.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator, model_validator

if TYPE_CHECKING:
    from typing import Self


T = TypeVar("T")


class ErrorPolicy(StrEnum):
    """
    What to do when a single zone fails to export.

    Attributes
    ----------
    ABORT : str
        Stop the whole run on the first failure.
    CONTINUE : str
        Log the failure, skip the zone and carry on with the next one.
    """

    ABORT = "abort"
    CONTINUE = "continue"


class ResultInfo(BaseModel):
    """
    Pagination metadata attached to list responses.

    Attributes
    ----------
    total_pages : int
        Number of pages available.
    count : int
        Number of items on this page.
    total_count : int
        Number of items across all pages.
    page : int
        Current page number.
    per_page : int
        Requested page size.
    """

    model_config = ConfigDict(frozen=True)

    total_pages: int = 0
    count: int = 0
    total_count: int = 0
    page: int = 0
    per_page: int = 0


def _message_to_str(item: Any) -> str:
    """Flatten a CloudFlare ``{"code", "message"}`` object into a string."""
    if isinstance(item, dict):
        code = item.get("code")
        message = item.get("message", "")
        return f"{code}: {message}" if code is not None else str(message)
    return str(item)


class Envelope(BaseModel, Generic[T]):
    """
    Standard CloudFlare API response wrapper.

    Attributes
    ----------
    success : bool
        Whether the request succeeded.
    errors : list[str]
        Error messages, in the order returned.
    messages : list[str]
        Informational messages, in the order returned.
    result_info : ResultInfo | None
        Pagination metadata (list endpoints only).
    result : T | None
        The payload.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    errors: list[str] = Field(default_factory=list)
    messages: list[str] = Field(default_factory=list)
    result_info: ResultInfo | None = None
    result: T | None = None

    @field_validator("errors", "messages", mode="before")
    @classmethod
    def flatten_messages(cls, value: Any) -> Any:
        """Accept both plain strings and ``{"code", "message"}`` objects."""
        if value is None:
            return []
        if isinstance(value, list):
            return [_message_to_str(item) for item in value]
        return value

    @model_validator(mode="after")
    def check_errors_on_failure(self) -> Self:
        """
        Validate that an unsuccessful envelope explains itself.

        Returns
        -------
        Self
            The validated model.

        Raises
        ------
        ValueError
            If ``success`` is false and no errors were returned.
        """
        if not self.success and not self.errors:
            msg = "unsuccessful response carries no errors"
            raise ValueError(msg)
        return self


class Zone(BaseModel):
    """
    A DNS zone on the account.

    Attributes
    ----------
    id : str
        Provider-assigned zone identifier.
    name : str
        Zone name, used as the backup file name.
    created_on : str
        Creation timestamp, verbatim from the API.
    activated_on : str | None
        Activation timestamp (None for pending zones).
    modified_on : str
        Last modification timestamp.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    created_on: str = ""
    activated_on: str | None = None
    modified_on: str = ""


class DNSRecord(BaseModel):
    """
    A DNS record belonging to a zone.

    Attributes
    ----------
    id : str
        Record identifier.
    type : str
        Record type (A, AAAA, CNAME, MX, ...).
    name : str
        Owner name.
    content : str
        Record value.
    ttl : int
        Time to live in seconds; 1 means automatic.
    proxiable : bool
        Whether the record can be proxied.
    proxied : bool
        Whether proxying is enabled.
    locked : bool
        Whether the record is locked.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    name: str
    content: str
    ttl: int = Field(ge=0)
    proxiable: bool = False
    proxied: bool = False
    locked: bool = False


class PageRuleConstraint(BaseModel):
    """Operator/value pair a page rule target is matched against."""

    model_config = ConfigDict(frozen=True)

    operator: str
    value: str


class PageRuleTarget(BaseModel):
    """A single page rule match target."""

    model_config = ConfigDict(frozen=True)

    target: str
    constraint: PageRuleConstraint


class PageRuleAction(BaseModel):
    """
    A page rule action.

    The value is left as arbitrary JSON; it is only ever written back out.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    value: JsonValue = None


class PageRule(BaseModel):
    """
    A routing (page) rule attached to a zone.

    Attributes
    ----------
    id : str
        Rule identifier.
    targets : list[PageRuleTarget]
        Match targets, in order.
    actions : list[PageRuleAction]
        Actions, in order.
    priority : int
        Rule priority.
    status : str
        Rule status ("active", "disabled").
    created_on : str
        Creation timestamp.
    modified_on : str
        Last modification timestamp.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    targets: list[PageRuleTarget] = Field(default_factory=list)
    actions: list[PageRuleAction] = Field(default_factory=list)
    priority: int = 0
    status: str = ""
    created_on: str = ""
    modified_on: str = ""
