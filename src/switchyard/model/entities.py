"""Proxy model entities.

These dataclasses are the in-memory form of the proxy configuration that the
reconciler mutates: backends and their servers, listeners, compiled switching
and http-request rules, and the timeout entries of the shared defaults
section.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from switchyard.core.errors import ValidationError

BALANCE_ALGORITHMS = frozenset(
    {
        "roundrobin",
        "static-rr",
        "leastconn",
        "first",
        "source",
        "uri",
        "url_param",
        "hdr",
        "random",
        "rdp-cookie",
    }
)

HTTP_CHECK_METHODS = frozenset(
    {"HEAD", "PUT", "POST", "GET", "TRACE", "PATCH", "DELETE", "CONNECT", "OPTIONS"}
)


class EntityKind(str, Enum):
    """Kinds of entities held by a config accessor."""

    BACKEND = "backend"
    SERVER = "server"
    LISTENER = "listener"
    DEFAULT_TIMEOUT = "default_timeout"
    SWITCHING_RULE = "switching_rule"
    HTTP_REQUEST_RULE = "http_request_rule"


class Mode(str, Enum):
    """Proxy protocol mode of a backend or listener."""

    HTTP = "http"
    TCP = "tcp"


class RequestAction(str, Enum):
    """Action of an http-request rule."""

    ALLOW = "allow"
    DENY = "deny"


@dataclass
class Balance:
    """Load-balancing algorithm of a backend."""

    algorithm: str

    def validate(self) -> None:
        if self.algorithm not in BALANCE_ALGORITHMS:
            raise ValidationError(
                f"unknown balance algorithm '{self.algorithm}', "
                f"expected one of {', '.join(sorted(BALANCE_ALGORITHMS))}"
            )


@dataclass
class HttpCheck:
    """HTTP health check of a backend.

    Example:
        >>> HttpCheck(uri="/healthz", method="GET").validate()
    """

    uri: str
    method: str = ""
    version: str = ""

    def validate(self) -> None:
        if not self.uri or any(c.isspace() for c in self.uri):
            raise ValidationError(f"invalid health check uri '{self.uri}'")
        if self.method and self.method not in HTTP_CHECK_METHODS:
            raise ValidationError(f"invalid health check method '{self.method}'")


@dataclass
class Backend:
    """A proxy backend."""

    name: str
    mode: Mode = Mode.HTTP
    balance: Balance | None = None
    forwardfor: bool = False
    http_check: HttpCheck | None = None
    abortonclose: bool = False
    check_timeout: int | None = None
    """Health check timeout in milliseconds."""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Backend:
        balance = data.get("balance")
        http_check = data.get("http_check")
        return cls(
            name=data["name"],
            mode=Mode(data.get("mode", "http")),
            balance=Balance(**balance) if balance else None,
            forwardfor=data.get("forwardfor", False),
            http_check=HttpCheck(**http_check) if http_check else None,
            abortonclose=data.get("abortonclose", False),
            check_timeout=data.get("check_timeout"),
        )


@dataclass
class Server:
    """A backend member, one per workload replica."""

    name: str
    address: str
    port: int | None = None
    check: bool | None = None
    inter: int | None = None
    """Health check interval in milliseconds."""
    maxconn: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Server:
        return cls(
            name=data["name"],
            address=data["address"],
            port=data.get("port"),
            check=data.get("check"),
            inter=data.get("inter"),
            maxconn=data.get("maxconn"),
        )


@dataclass
class Listener:
    """A named proxy entry point."""

    name: str
    mode: Mode = Mode.HTTP
    default_backend: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "mode": self.mode.value, "default_backend": self.default_backend}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Listener:
        return cls(
            name=data["name"],
            mode=Mode(data.get("mode", "http")),
            default_backend=data.get("default_backend", ""),
        )


@dataclass
class TimeoutEntry:
    """A ``timeout <name> <value>`` line of the defaults section."""

    name: str
    value: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CompiledSwitchingRule:
    """A ``use_backend <backend> if <cond_test>`` line of a listener.

    ``id`` is a placeholder priority; the accessor assigns the position.
    """

    backend: str
    cond_test: str
    cond: str = "if"
    id: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class HTTPRequestRule:
    """An ``http-request <action> if <cond_test>`` line of a listener."""

    action: RequestAction
    cond_test: str
    cond: str = "if"
    id: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "cond_test": self.cond_test,
            "cond": self.cond,
            "id": self.id,
        }
