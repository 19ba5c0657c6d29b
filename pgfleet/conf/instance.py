"""
Instance

One database node, identified by IP and a derived ``<cluster>-<seq>`` name.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable

from pgfleet.conf.utils import dump_yaml, is_valid_ip
from pgfleet.conf.vars import Vars
from pgfleet.constants import AVAILABLE_ROLES, INSTANCE_NAME_PATTERN

INSTANCE_NAME_RE = re.compile(rf"^{INSTANCE_NAME_PATTERN}$")


def compile_pattern(pattern: str):
    """Compile a name pattern, returning None when the regex is invalid."""
    try:
        return re.compile(pattern)
    except re.error:
        return None


@dataclass
class Instance:
    """
    Database node.

    The owning cluster is referenced by name only; resolve it through the
    Config (``Config.cluster_of``) that holds both.
    """

    ip: str
    name: str
    seq: int
    role: str
    cluster_name: str
    vars: Vars = field(default_factory=Vars)

    def is_valid(self) -> bool:
        """Tell whether the instance identity fields are well formed."""
        if not self.ip or not self.name or not self.role:
            return False
        if self.seq < 0:
            return False
        if not INSTANCE_NAME_RE.match(self.name):
            return False
        if self.role not in AVAILABLE_ROLES:
            return False
        return is_valid_ip(self.ip)

    def match_name(self, pattern: str) -> bool:
        """Test whether a name, an IP or a regexp matches this instance or its cluster."""
        if pattern in (self.name, self.cluster_name):
            return True
        if is_valid_ip(pattern) and pattern == self.ip:
            return True
        regex = compile_pattern(pattern)
        if regex is None:
            return False
        return bool(regex.search(self.name) or regex.search(self.cluster_name))

    def match_names(self, patterns: Iterable[str]) -> bool:
        return any(self.match_name(p) for p in patterns)

    def summary(self) -> str:
        return f"[{self.seq}]({self.role}) {self.ip:<15} {self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip": self.ip,
            "name": self.name,
            "seq": self.seq,
            "role": self.role,
            "cluster": self.cluster_name,
            "vars": self.vars.to_dict(),
        }

    def __str__(self) -> str:
        return dump_yaml({self.ip: self.vars.to_dict()})
