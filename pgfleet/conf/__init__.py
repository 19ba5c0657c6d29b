"""Inventory model: vars, instances, clusters and the whole config."""

from pgfleet.conf.cluster import Cluster
from pgfleet.conf.config import (
    Config,
    NameType,
    load_config,
    overwrite_config,
    parse_config,
)
from pgfleet.conf.instance import Instance
from pgfleet.conf.objects import PgDatabase, PgHba, PgService, PgUser
from pgfleet.conf.vars import Vars

__all__ = [
    "Cluster",
    "Config",
    "Instance",
    "NameType",
    "PgDatabase",
    "PgHba",
    "PgService",
    "PgUser",
    "Vars",
    "load_config",
    "overwrite_config",
    "parse_config",
]
