"""
Cluster

Named group of instances sharing variables.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from pgfleet.conf.instance import Instance, compile_pattern
from pgfleet.conf.utils import dump_yaml, is_valid_ip
from pgfleet.conf.vars import Vars
from pgfleet.constants import (
    AVAILABLE_ROLES,
    GROUP_META,
    ROLE_PRIMARY,
    VAR_PG_ROLE,
    VAR_PG_SEQ,
    VAR_PG_SHARD,
    VAR_PG_SINDEX,
)
from pgfleet.exceptions import ValidationError


class Cluster:
    """
    PostgreSQL cluster (or the control-plane ``meta`` group).

    Instances are kept in declaration order; ``name_map``, ``seq_map`` and
    ``ip_map`` index the same objects and are only updated by
    ``add_instance``.
    """

    def __init__(self, name: str, vars: Optional[Vars] = None):
        self.name = name
        self.vars = vars if vars is not None else Vars()
        self.shard, _ = self.vars.get_string(VAR_PG_SHARD)
        self.sindex, _ = self.vars.get_integer(VAR_PG_SINDEX)
        self.pg_users = self.vars.parse_users()
        self.pg_databases = self.vars.parse_databases()
        self.pg_services = self.vars.parse_services()
        self.pg_hba_rules = self.vars.parse_hba_rules()

        self.instances: List[Instance] = []
        self.name_map: Dict[str, Instance] = {}
        self.seq_map: Dict[int, Instance] = {}
        self.ip_map: Dict[str, Instance] = {}
        self.primary: Optional[Instance] = None

    @property
    def is_meta(self) -> bool:
        return self.name == GROUP_META

    def add_instance(self, ip: str, vars: Optional[Vars] = None) -> Instance:
        """
        Add a new instance from its IP (host key) and vars (host value).

        All checks run before the cluster is touched, so a rejected
        instance leaves instances and indexes unchanged.

        Raises:
            ValidationError: On empty/invalid IP, missing or invalid
                pg_seq/pg_role (non-meta clusters), a name that is not
                ``<cluster>-<seq>``, or a duplicate IP/seq/name within this cluster
        """
        vars = vars if vars is not None else Vars()
        if not ip:
            raise ValidationError(
                f"invalid instance ip in cluster {self.name}: {vars.to_dict()}",
                field="ip",
            )
        if not is_valid_ip(ip):
            raise ValidationError(f"invalid instance ip: {ip}", field="ip", ip=ip)

        seq, seq_exists = vars.get_integer(VAR_PG_SEQ)
        role, role_exists = vars.get_string(VAR_PG_ROLE)
        if not self.is_meta:  # meta group does not require identity fields
            if not seq_exists:
                raise ValidationError(
                    f"instance pg_seq is required: {ip}", field=VAR_PG_SEQ, ip=ip
                )
            if not role_exists:
                raise ValidationError(
                    f"instance pg_role is required: {ip}", field=VAR_PG_ROLE, ip=ip
                )
            if role not in AVAILABLE_ROLES:
                raise ValidationError(
                    f"invalid pg_role value {role} for {ip}", field=VAR_PG_ROLE, ip=ip
                )

        name = f"{self.name}-{seq}"
        if ip in self.ip_map:
            raise ValidationError(
                f"duplicate instance ip {ip} in cluster {self.name}", field="ip", ip=ip
            )
        if not self.is_meta:
            if seq in self.seq_map:
                raise ValidationError(
                    f"duplicate pg_seq {seq} in cluster {self.name}",
                    field=VAR_PG_SEQ,
                    ip=ip,
                )
            if role == ROLE_PRIMARY and self.primary is not None:
                raise ValidationError(
                    f"cluster {self.name} already has primary {self.primary.ip}",
                    field=VAR_PG_ROLE,
                    ip=ip,
                )

        ins = Instance(
            ip=ip, name=name, seq=seq, role=role, cluster_name=self.name, vars=vars
        )
        if not self.is_meta and not ins.is_valid():
            raise ValidationError(
                f"invalid instance name {name} for {ip}, want <cluster>-<seq>",
                field="name",
                ip=ip,
            )
        self.instances.append(ins)
        if ins.role == ROLE_PRIMARY:
            self.primary = ins
        self.ip_map[ins.ip] = ins
        # meta nodes without pg_seq all share seq 0, first one keeps the slot
        self.seq_map.setdefault(ins.seq, ins)
        self.name_map.setdefault(ins.name, ins)
        return ins

    def get_instance(self, name: str) -> Optional[Instance]:
        """Return instance by instance name or IP."""
        if name in self.name_map:
            return self.name_map[name]
        if not is_valid_ip(name):
            return None
        return self.ip_map.get(name)

    def ip_list(self) -> List[str]:
        return [ins.ip for ins in self.instances]

    def name_list(self) -> List[str]:
        return [ins.name for ins in self.instances]

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------
    def match_name(self, pattern: str) -> bool:
        """Test whether a name or regexp matches the cluster name."""
        if self.name == pattern:
            return True
        regex = compile_pattern(pattern)
        if regex is None:
            return False
        return regex.search(self.name) is not None

    def match_names(self, patterns: Iterable[str]) -> bool:
        return any(self.match_name(p) for p in patterns)

    # ------------------------------------------------------------------
    # Representation
    # ------------------------------------------------------------------
    def hosts_dict(self) -> Dict[str, Any]:
        return {ins.ip: ins.vars.to_dict() for ins in self.instances}

    def to_inventory(self) -> Dict[str, Any]:
        """Inventory group shape: hosts in declaration order, then vars."""
        return {"hosts": self.hosts_dict(), "vars": self.vars.to_dict()}

    def to_dict(self) -> Dict[str, Any]:
        data = {"pg_cluster": self.name}
        if self.shard:
            data["pg_shard"] = self.shard
        if self.sindex:
            data["pg_sindex"] = self.sindex
        data["hosts"] = [ins.to_dict() for ins in self.instances]
        data["vars"] = self.vars.to_dict()
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=4, default=str)

    def to_yaml(self) -> str:
        return dump_yaml({self.name: self.to_inventory()})

    def summary(self) -> str:
        """Multi-line digest of users, databases and instances."""
        users = ", ".join(u.name for u in self.pg_users)
        dbs = ", ".join(d.name for d in self.pg_databases)
        instances = "\n".join(f"      - {ins.summary()}" for ins in self.instances)
        return (
            "---------------------------------------\n"
            f"- Cluster  :  {self.name}\n"
            f"  Usernames:  {users}\n"
            f"  Databases:  {dbs}\n"
            f"  Instances:\n{instances}"
        )

    def repr_as(self, format: str = "default") -> str:
        """Cluster representation according to format: yaml|json|detail|default."""
        if format in ("yaml", "y"):
            return self.to_yaml()
        if format in ("json", "j"):
            return self.to_json()
        if format in ("detail", "d", "summary", "s"):
            return self.summary()
        return str(self)

    def __str__(self) -> str:
        parts = [f"{ins.seq}-{ins.role}: {ins.ip:<15}" for ins in self.instances]
        return f"{self.name:<32} {' '.join(parts)}"

    def __repr__(self) -> str:
        return f"Cluster(name={self.name!r}, instances={len(self.instances)})"
