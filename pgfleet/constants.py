"""
pgfleet Constants

Centralized constants for magic values, defaults, and configuration.
"""

# Inventory
DEFAULT_INVENTORY_NAME = "pigsty.yml"
DEFAULT_INVENTORY_PATH = "./pigsty.yml"
INVENTORY_ENV = "PGFLEET_INVENTORY"

# Groups
GROUP_META = "meta"

# Instance roles
ROLE_PRIMARY = "primary"
ROLE_REPLICA = "replica"
ROLE_STANDBY = "standby"
ROLE_OFFLINE = "offline"
ROLE_DELAYED = "delayed"

AVAILABLE_ROLES = (
    ROLE_PRIMARY,
    ROLE_REPLICA,
    ROLE_STANDBY,
    ROLE_OFFLINE,
    ROLE_DELAYED,
)

# Reserved variable keys
VAR_PG_SEQ = "pg_seq"
VAR_PG_ROLE = "pg_role"
VAR_PG_SHARD = "pg_shard"
VAR_PG_SINDEX = "pg_sindex"
VAR_PG_USERS = "pg_users"
VAR_PG_DATABASES = "pg_databases"
VAR_PG_SERVICES = "pg_services"
VAR_PG_HBA_RULES = "pg_hba_rules"

# Instance name pattern: <cluster>-<seq>
INSTANCE_NAME_PATTERN = r"[a-zA-Z][a-zA-Z0-9_-]*-\d+"

# Server
DEFAULT_LISTEN_ADDR = ":9633"
DEFAULT_DATA_DIR = "/tmp/pgfleet"
DATA_DIR_ENV = "PGFLEET_DATA_DIR"
LISTEN_ADDR_ENV = "PGFLEET_LISTEN_ADDR"
LOG_SUBDIR = "log"
JOB_SUBDIR = "job"

# Executor working directory layout (<work_dir>/.pgfleet/...)
EXECUTOR_HOME = ".pgfleet"
EXECUTOR_LOG_DIR = "log"
EXECUTOR_PUBLIC_DIR = "public"

# Ansible Configuration
ANSIBLE_PLAYBOOK_BIN = "ansible-playbook"
ANSIBLE_PLAYBOOK_BIN_ENV = "ANSIBLE_PLAYBOOK_BIN"
ANSIBLE_LOG_PATH_ENV = "ANSIBLE_LOG_PATH"

# Set before every ansible-playbook invocation (process-wide)
ANSIBLE_QUIET_ENV = {
    "ANSIBLE_TRANSFORM_INVALID_GROUP_CHARS": "ignore",
    "ANSIBLE_DEPRECATION_WARNINGS": "False",
    "ANSIBLE_SYSTEM_WARNINGS": "False",
    "ANSIBLE_ACTION_WARNINGS": "False",
    "ANSIBLE_COMMAND_WARNINGS": "False",
    "ANSIBLE_DEVEL_WARNING": "False",
    "ANSIBLE_DISPLAY_ARGS_TO_STDOUT": "False",
}

# Seconds to wait after SIGTERM before SIGKILL on cancellation
CANCEL_GRACE_SECONDS = 5.0
OUTPUT_POLL_INTERVAL = 0.1

# Log Configuration
LOG_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
BACKUP_SUFFIX_FORMAT = "%Y%m%d%H%M%S"

# Error Messages
ERROR_LIMIT_REQUIRED = (
    "YOU MUST USE LIMIT(-l) WITH {verb}! or use force(-f) to overwrite"
)
