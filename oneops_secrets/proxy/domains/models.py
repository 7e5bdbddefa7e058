"""Wire models exchanged with the Secrets Proxy.

Plain data records. The proxy speaks camelCase JSON; timestamps are epoch
seconds (ISO-8601 strings are accepted too) and become UTC datetimes.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def list_of(parser: Callable[[Any], Any]) -> Callable[[Any], List[Any]]:
    """Return a parser for a JSON array whose items are parsed by `parser`."""

    def parse(data: Any) -> List[Any]:
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array, got {type(data).__name__}")
        return [parser(item) for item in data]

    return parse


@dataclass
class ErrorRes:
    """Error payload returned by the proxy for non-2xx responses."""
    status: Optional[int] = None
    error: Optional[str] = None
    message: Optional[str] = None
    path: Optional[str] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ErrorRes":
        status = data.get("status", data.get("code"))
        return cls(
            status=int(status) if status is not None else None,
            error=data.get("error"),
            message=data.get("message"),
            path=data.get("path"),
            timestamp=_to_datetime(data.get("timestamp")),
        )


@dataclass
class TokenReq:
    username: str
    password: str
    domain: str

    def to_dict(self) -> Dict[str, Any]:
        return {"username": self.username, "password": self.password, "domain": self.domain}


@dataclass
class TokenRes:
    access_token: str
    token_type: str = "Bearer"
    expires_in_sec: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenRes":
        return cls(
            access_token=data["accessToken"],
            token_type=data.get("tokenType", "Bearer"),
            expires_in_sec=data.get("expiresInSec"),
        )


@dataclass
class AuthUser:
    username: str
    cn: Optional[str] = None
    domain: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthUser":
        return cls(username=data["username"], cn=data.get("cn"), domain=data.get("domain"))


@dataclass
class Group:
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        return cls(
            name=data["name"],
            description=data.get("description"),
            created_at=_to_datetime(data.get("createdAt")),
            created_by=data.get("createdBy"),
            metadata=data.get("metadata") or {},
        )


@dataclass
class Client:
    """A registered consumer (compute) allowed to fetch the group's secrets."""
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    last_seen: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Client":
        return cls(
            name=data["name"],
            description=data.get("description"),
            created_at=_to_datetime(data.get("createdAt")),
            created_by=data.get("createdBy"),
            updated_at=_to_datetime(data.get("updatedAt")),
            updated_by=data.get("updatedBy"),
            last_seen=_to_datetime(data.get("lastSeen")),
        )


@dataclass
class Secret:
    """Secret metadata. The content itself is only returned by SecretContent."""
    name: str
    description: Optional[str] = None
    checksum: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    expiry: Optional[datetime] = None
    type: Optional[str] = None
    version: Optional[int] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Secret":
        # expiry 0 means the secret never expires
        expiry = data.get("expiry")
        return cls(
            name=data["name"],
            description=data.get("description"),
            checksum=data.get("checksum"),
            created_at=_to_datetime(data.get("createdAt")),
            created_by=data.get("createdBy"),
            updated_at=_to_datetime(data.get("updatedAt")),
            updated_by=data.get("updatedBy"),
            expiry=_to_datetime(expiry) if expiry else None,
            type=data.get("type"),
            version=data.get("version"),
            metadata=data.get("metadata") or {},
        )


@dataclass
class SecretReq:
    """
    Create/update request. `content` is the base64 encoded secret.

    Fields left as None are not sent, so an update keeps the server's
    current description, expiry and metadata.
    """
    content: str
    description: Optional[str] = None
    expiry: Optional[int] = None
    type: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"content": self.content}
        if self.description is not None:
            data["description"] = self.description
        if self.expiry is not None:
            data["expiry"] = self.expiry
        if self.metadata is not None:
            data["metadata"] = self.metadata
        if self.type:
            data["type"] = self.type
        return data


@dataclass
class SecretVersion:
    version: int

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version}


@dataclass
class SecretContent:
    name: str
    secret: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecretContent":
        return cls(name=data["name"], secret=data["secret"])
