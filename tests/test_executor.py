"""Tests for executor construction."""

import pytest

from pgfleet.exceptions import InventoryIOError, ValidationError
from pgfleet.runner import Executor


class TestExecutor:
    def test_from_file(self, inventory_path):
        executor = Executor(inventory_path)

        assert executor.work_dir == inventory_path.parent
        assert executor.inventory == "pigsty.yml"
        assert executor.config_path == inventory_path
        assert "pg-test" in executor.config.cluster_map

    def test_from_directory(self, inventory_path):
        executor = Executor(inventory_path.parent)

        assert executor.config_path == inventory_path

    def test_default_log_dir(self, inventory_path):
        executor = Executor(inventory_path)

        assert executor.log_dir == inventory_path.parent / ".pgfleet" / "log"
        assert executor.static_dir == inventory_path.parent / ".pgfleet" / "public"

    def test_custom_log_dir(self, inventory_path, tmp_path):
        assert Executor(inventory_path, log_dir=tmp_path / "logs").log_dir == tmp_path / "logs"

    def test_missing_path(self, tmp_path):
        with pytest.raises(InventoryIOError):
            Executor(tmp_path / "missing.yml")

    def test_directory_without_inventory(self, tmp_path):
        with pytest.raises(InventoryIOError, match="pigsty.yml"):
            Executor(tmp_path)

    def test_invalid_inventory(self, tmp_path):
        path = tmp_path / "pigsty.yml"
        path.write_text("all:\n  children:\n")

        with pytest.raises(ValidationError):
            Executor(path)

    def test_unknown_job(self, inventory_path):
        assert Executor(inventory_path).get_job("nope") is None
