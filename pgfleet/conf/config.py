"""
Config

The whole inventory: ordered clusters, global vars, and derived indexes.
Loading is two-phase: the document tree is parsed into clusters first,
then ``build_index`` fills the lookup maps.
"""

import logging
import os
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from pgfleet.conf.cluster import Cluster
from pgfleet.conf.instance import Instance
from pgfleet.conf.utils import dump_yaml, is_null, is_valid_ip, mapping_items, yaml_document
from pgfleet.conf.vars import Vars
from pgfleet.constants import BACKUP_SUFFIX_FORMAT, DEFAULT_INVENTORY_NAME, GROUP_META
from pgfleet.exceptions import InventoryIOError, SchemaError, ValidationError

logger = logging.getLogger(__name__)


class NameType(str, Enum):
    """Classification of a limit/scope string."""

    CLUSTER = "cluster"
    INSTANCE = "instance"
    IP = "ip"
    INVALID = "invalid"


class Config:
    """Parsed inventory."""

    def __init__(self, clusters: Optional[List[Cluster]] = None, vars: Optional[Vars] = None):
        self.clusters: List[Cluster] = clusters if clusters is not None else []
        self.vars = vars if vars is not None else Vars()

        # derived by build_index
        self.meta_cluster: Optional[Cluster] = None
        self.cluster_map: Dict[str, Cluster] = {}
        self.instance_map: Dict[str, Instance] = {}
        self.ip_map: Dict[str, Instance] = {}

        self.path: Optional[Path] = None
        self.raw: bytes = b""

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------
    def build_index(self) -> None:
        """
        Rebuild the derived maps from ``clusters``.

        Must run after every structural change. The meta group is kept
        aside in ``meta_cluster``; its IPs only enter ``ip_map`` where no
        regular instance claims the same address.

        Raises:
            ValidationError: If there is no meta group, or cluster names,
                instance names or IPs collide across regular clusters
        """
        meta: Optional[Cluster] = None
        cluster_map: Dict[str, Cluster] = {}
        instance_map: Dict[str, Instance] = {}
        ip_map: Dict[str, Instance] = {}

        for cls in self.clusters:
            if cls.name == GROUP_META:
                if meta is not None:
                    raise ValidationError("duplicate meta group", field="children")
                meta = cls
                continue
            if cls.name in cluster_map:
                raise ValidationError(f"duplicate cluster name {cls.name}", field="children")
            cluster_map[cls.name] = cls
            for ins in cls.instances:
                if ins.name in instance_map:
                    raise ValidationError(
                        f"duplicate instance name {ins.name}", field="name", ip=ins.ip
                    )
                if ins.ip in ip_map:
                    other = ip_map[ins.ip]
                    raise ValidationError(
                        f"ip {ins.ip} used by both {other.name} and {ins.name}",
                        field="ip",
                        ip=ins.ip,
                    )
                instance_map[ins.name] = ins
                ip_map[ins.ip] = ins

        if meta is None:
            raise ValidationError(f"inventory has no {GROUP_META} group", field="children")
        for ins in meta.instances:
            ip_map.setdefault(ins.ip, ins)

        self.meta_cluster = meta
        self.cluster_map = cluster_map
        self.instance_map = instance_map
        self.ip_map = ip_map

    # ------------------------------------------------------------------
    # Getter
    # ------------------------------------------------------------------
    def get_cluster(self, name: str) -> Optional[Cluster]:
        """Return cluster according to name, the meta group included."""
        if name == GROUP_META:
            return self.meta_cluster
        return self.cluster_map.get(name)

    def get_instance(self, name: str) -> Optional[Instance]:
        """Return instance according to instance name or IP."""
        if name in self.instance_map:
            return self.instance_map[name]
        if is_valid_ip(name) and name in self.ip_map:
            return self.ip_map[name]
        if self.meta_cluster is not None:
            return self.meta_cluster.get_instance(name)
        return None

    def is_meta_node(self, name: str) -> bool:
        """Check whether name is the name or IP of a meta node."""
        if self.meta_cluster is None:
            return False
        return any(name in (ins.name, ins.ip) for ins in self.meta_cluster.instances)

    def cluster_of(self, instance: Instance) -> Optional[Cluster]:
        """Resolve an instance's owning cluster."""
        return self.get_cluster(instance.cluster_name)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------
    def name_type(self, name: str) -> NameType:
        """Tell whether name is a cluster, an instance, a known IP or invalid."""
        # a raw IP is never taken as a cluster or instance name
        if is_valid_ip(name):
            return NameType.IP if name in self.ip_map else NameType.INVALID
        if name in self.instance_map:
            return NameType.INSTANCE
        if name in self.cluster_map:
            return NameType.CLUSTER
        return NameType.INVALID

    def get_instances_by_name(self, name: str) -> List[Instance]:
        """Translate a name into the list of instances it designates."""
        kind = self.name_type(name)
        if kind == NameType.IP:
            return [self.ip_map[name]]
        if kind == NameType.INSTANCE:
            return [self.instance_map[name]]
        if kind == NameType.CLUSTER:
            return list(self.cluster_map[name].instances)
        return []

    def translate(self, limit: str) -> List[Instance]:
        """
        Resolve a comma separated limit string to instances.

        Args:
            limit: e.g. ``pg-test,10.10.10.11,pg-meta-1``

        Returns:
            De-duplicated instances in the order they were first named
        """
        result: List[Instance] = []
        seen = set()
        for part in limit.split(","):
            part = part.strip()
            if not part:
                continue
            for ins in self.get_instances_by_name(part):
                if ins.ip not in seen:
                    seen.add(ins.ip)
                    result.append(ins)
        return result

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        children = {cls.name: cls.to_inventory() for cls in self.clusters}
        return {"all": {"children": children, "vars": self.vars.to_dict()}}

    def to_yaml(self) -> str:
        """Serialize back to the inventory format, declaration order kept."""
        return dump_yaml(self.to_dict())

    def infra_info(self) -> str:
        """Text digest of meta nodes, DCS, nginx, repo, NTP and DNS settings."""
        meta = self.meta_cluster.instances if self.meta_cluster else []
        primary_ip = meta[0].ip if meta else ""
        lines = [f"Meta ({len(meta)}): "]
        for ins in meta:
            suffix = " [primary]" if ins.ip == primary_ip else ""
            lines.append(f"    - {ins.ip}{suffix}")

        dcs_type, _ = self.vars.get_string("dcs_type")
        dcs_servers, _ = self.vars.get_map("dcs_servers")
        lines.append("")
        lines.append(f"DCS ({dcs_type}):")
        for name, addr in (dcs_servers or {}).items():
            lines.append(f"    {name}: {addr}")

        lines.append("")
        lines.append("Nginx: ")
        upstreams, _ = self.vars.get_array("nginx_upstream")
        for entry in upstreams or []:
            if not isinstance(entry, dict):
                continue
            url = str(entry.get("url", ""))
            lines.append(
                f"    - {entry.get('name', ''):<12} ({url})\thttp://{entry.get('host', '')}"
                f"\t ->  http://{url.replace('127.0.0.1', primary_ip):<16}"
            )

        repo_address, _ = self.vars.get_string("repo_address")
        repo_name, _ = self.vars.get_string("repo_name")
        repo_home, _ = self.vars.get_string("repo_home")
        lines.append("")
        lines.append("Repo: ")
        lines.append(f"    - http://{repo_address} -> {primary_ip}:{repo_home}/{repo_name}")

        ntp_config, _ = self.vars.get_bool("node_ntp_config")
        if ntp_config:
            ntp_servers, _ = self.vars.get_array("node_ntp_servers")
            lines.append("")
            lines.append("NTP: ")
            lines.extend(f"    - {s}" for s in ntp_servers or [])

        dns_mode, _ = self.vars.get_string("node_dns_server")
        if dns_mode in ("add", "overwrite"):
            dns_servers, _ = self.vars.get_array("node_dns_servers")
            lines.append("")
            lines.append("DNS: ")
            lines.extend(f"    - {s}" for s in dns_servers or [])
        return "\n".join(lines) + "\n"

    def __repr__(self) -> str:
        return f"Config(path={self.path!r}, clusters={[c.name for c in self.clusters]!r})"


# ----------------------------------------------------------------------
# Constructor
# ----------------------------------------------------------------------
def parse_config(data: Union[bytes, str]) -> Config:
    """
    Parse an inventory document into an indexed Config.

    Document shape::

        all:
          children:
            <cluster>:
              hosts: {<ip>: {<instance vars>}}
              vars: {<cluster vars>}
          vars: {<global vars>}

    Raises:
        SchemaError: On invalid YAML or a wrongly shaped document
        ValidationError: On an invalid instance or cluster definition
    """
    with yaml_document(data) as (root, loader):
        top = dict(mapping_items(loader, root, "inventory root"))
        if "all" not in top:
            raise SchemaError("inventory root must contain 'all' group")
        sections = dict(mapping_items(loader, top["all"], "all"))

        cfg = Config()
        children = sections.get("children")
        if children is not None and not is_null(children):
            for cluster_name, group_node in mapping_items(loader, children, "children"):
                cfg.clusters.append(_parse_cluster(loader, cluster_name, group_node))
        if "vars" in sections:
            cfg.vars = Vars.from_node(sections["vars"], loader)

    cfg.build_index()
    return cfg


def _parse_cluster(loader: yaml.SafeLoader, name: str, node: yaml.Node) -> Cluster:
    if is_null(node):
        return Cluster(name)
    group = dict(mapping_items(loader, node, f"cluster {name}"))
    cls_vars = Vars.from_node(group["vars"], loader) if "vars" in group else Vars()
    cls = Cluster(name, cls_vars)
    hosts = group.get("hosts")
    if hosts is None or is_null(hosts):
        return cls
    for ip, host_node in mapping_items(loader, hosts, f"hosts of {name}"):
        cls.add_instance(ip, Vars.from_node(host_node, loader))
    return cls


def load_config(path: Union[str, Path]) -> Config:
    """
    Read and parse the inventory file at path.

    Raises:
        InventoryIOError: If the file cannot be read
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise InventoryIOError(f"fail to read config {path}", context=str(e)) from e
    cfg = parse_config(data)
    cfg.path = path
    cfg.raw = data
    logger.debug("loaded %d clusters from %s", len(cfg.clusters), path)
    return cfg


def backup_path(dst: Path) -> Path:
    """Return ``<dst>.bak<timestamp>``, suffixed ``.1``, ``.2``... when already taken."""
    bak = dst.with_name(dst.name + ".bak" + datetime.now().strftime(BACKUP_SUFFIX_FORMAT))
    candidate, n = bak, 0
    while candidate.exists():
        n += 1
        candidate = bak.with_name(f"{bak.name}.{n}")
    return candidate


def overwrite_config(data: Union[bytes, str], path: Union[str, Path]) -> Optional[Path]:
    """
    Replace the inventory at path, keeping the previous file as backup.

    Content is validated before anything is written. The new document goes
    to ``<dst>.tmp``, an existing ``<dst>`` is renamed to
    ``<dst>.bak<timestamp>`` (see ``backup_path``), then the tmp file is renamed
    into place.

    Args:
        data: New inventory content
        path: Inventory file, or a directory holding ``pigsty.yml``

    Returns:
        Backup path if a previous file existed, else None

    Raises:
        SchemaError, ValidationError: If data is not a valid inventory
        InventoryIOError: If writing or renaming fails
    """
    parse_config(data)
    if isinstance(data, str):
        data = data.encode("utf-8")

    dst = Path(path)
    if dst.is_dir():
        logger.info("config path %s is a dir, append %s", dst, DEFAULT_INVENTORY_NAME)
        dst = dst / DEFAULT_INVENTORY_NAME
    tmp = dst.with_name(dst.name + ".tmp")
    bak = backup_path(dst)

    try:
        tmp.write_bytes(data)
    except OSError as e:
        raise InventoryIOError(f"fail to write new config to {tmp}", context=str(e)) from e

    backup = None
    if dst.is_file():
        try:
            os.replace(dst, bak)
        except OSError as e:
            raise InventoryIOError(f"fail to backup config {dst} to {bak}", context=str(e)) from e
        logger.warning("rename existing config from %s to %s", dst, bak)
        backup = bak

    try:
        os.replace(tmp, dst)
    except OSError as e:
        raise InventoryIOError(f"fail to swap tmp config {tmp} to {dst}", context=str(e)) from e
    return backup
