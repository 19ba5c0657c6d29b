"""
Business Object Models

Dataclass descriptors for users, databases, hba rules and services
declared in a cluster's vars.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class PgDatabase:
    """Business database; name is the only required field."""

    name: str
    owner: str = ""
    template: str = ""  # template1 by default
    encoding: str = ""
    locale: str = ""
    lc_collate: str = ""
    lc_ctype: str = ""
    allowconn: bool = True
    revokeconn: bool = False
    tablespace: str = ""
    connlimit: int = -1
    pgbouncer: bool = True
    comment: str = ""
    extensions: List[Dict[str, str]] = field(default_factory=list)
    parameters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PgDatabase":
        return cls(**_known_fields(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PgUser:
    """Business user or role."""

    name: str
    password: str = ""  # may be md5 encrypted
    login: bool = True
    superuser: bool = False
    createdb: bool = False
    createrole: bool = False
    inherit: bool = True
    replication: bool = False
    bypassrls: bool = False
    pgbouncer: bool = False
    connlimit: int = -1
    expire_in: Optional[int] = None  # now + n days, overwrites expire_at
    expire_at: str = ""
    comment: str = ""
    roles: List[str] = field(default_factory=list)
    parameters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PgUser":
        return cls(**_known_fields(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("password", None)
        return data


@dataclass
class PgHba:
    """One block of hba rules."""

    title: str = ""
    role: str = ""
    rules: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PgHba":
        return cls(**_known_fields(cls, data))


@dataclass
class PgService:
    """One service definition exposed through haproxy."""

    name: str
    src_ip: str = ""
    src_port: int = 0
    dst_port: int = 0
    check_url: str = ""
    selector: str = ""
    selector_backup: str = ""
    haproxy: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PgService":
        return cls(**_known_fields(cls, data))
