"""Tests for the config registry."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from confkeep.codec import JsonCommentCodec, YamlCommentCodec
from confkeep.errors import ConfigSaveError, DuplicateConfigError
from confkeep.manager import CONFIG_DIR_ENV_VAR, AutoLoadPolicy, ConfigManager, resolve_root_dir
from tests.sample_configs import Endpoint, ExampleConfig, SimpleConfig


@pytest.fixture
def manager(tmp_path: Path) -> ConfigManager:
    """A manager storing files in a temporary directory."""
    return ConfigManager("testapp", root_dir=tmp_path / "config")


def _read(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def test_eager_register_writes_defaults(manager: ConfigManager) -> None:
    """Test that registering a config creates its file with defaults."""
    config = manager.register("example", ExampleConfig())

    path = manager.file_path("example")
    assert path == manager.root_dir / "example.json"
    assert _read(path)["some_int"] == {"value": 15, "comment": "This is an Integer value. (1..100)"}
    assert not config.is_dirty


def test_register_returns_same_instance(manager: ConfigManager) -> None:
    """Test that register hands back the instance it was given."""
    config = ExampleConfig()

    assert manager.register("example", config) is config
    assert manager.get("example") is config


def test_manual_policy_does_not_touch_disk(tmp_path: Path) -> None:
    """Test that manual registration defers loading."""
    manager = ConfigManager("testapp", root_dir=tmp_path, policy=AutoLoadPolicy.MANUAL)

    manager.register("example", ExampleConfig())

    assert not (tmp_path / "example.json").exists()
    manager.load_all()
    assert (tmp_path / "example.json").exists()


def test_duplicate_registration(manager: ConfigManager) -> None:
    """Test that a file name can only be registered once."""
    manager.register("example", ExampleConfig())

    with pytest.raises(DuplicateConfigError, match="Duplicate config: example"):
        manager.register("example", SimpleConfig())


def test_load_merges_existing_file(tmp_path: Path) -> None:
    """Test loading values from a file written earlier."""
    path = tmp_path / "example.json"
    JsonCommentCodec().write(path, ExampleConfig(some_string="stored", some_object=Endpoint("s", 7)))
    before = path.stat().st_mtime_ns

    config = ConfigManager("testapp", root_dir=tmp_path).register("example", ExampleConfig())

    assert config.some_string == "stored"
    assert config.some_object == Endpoint("s", 7)
    assert path.stat().st_mtime_ns == before


def test_load_resets_before_merge(tmp_path: Path) -> None:
    """Test that in-memory edits are discarded by a reload."""
    manager = ConfigManager("testapp", root_dir=tmp_path)
    config = manager.register("example", ExampleConfig())
    config.some_string = "unsaved"
    config.tags.append("unsaved")

    manager.load("example")

    assert config.some_string == "example"
    assert config.tags == ["a", "b"]


def test_partial_file_is_rewritten(tmp_path: Path) -> None:
    """Test that missing keys are filled in on disk."""
    path = tmp_path / "example.json"
    path.write_text(json.dumps({"some_string": "flat"}), encoding="utf-8")

    config = ConfigManager("testapp", root_dir=tmp_path).register("example", ExampleConfig())

    assert config.some_string == "flat"
    doc = _read(path)
    assert doc["some_string"] == {"value": "flat", "comment": "This is a String value."}
    assert doc["some_int"]["value"] == 15


def test_corrupt_file_is_regenerated(tmp_path: Path) -> None:
    """Test that an unparsable file is replaced with defaults."""
    path = tmp_path / "example.json"
    path.write_text("{ not json", encoding="utf-8")

    config = ConfigManager("testapp", root_dir=tmp_path).register("example", ExampleConfig())

    assert config == ExampleConfig()
    assert _read(path)["some_string"]["value"] == "example"


def test_validate_normalizes_values(tmp_path: Path) -> None:
    """Test that the validate hook runs after merging."""
    path = tmp_path / "example.json"
    JsonCommentCodec().write(path, ExampleConfig(some_int=500))

    config = ConfigManager("testapp", root_dir=tmp_path).register("example", ExampleConfig())

    assert config.some_int == 15


def test_validate_replacement_is_copied_back(tmp_path: Path) -> None:
    """Test that a replacement instance from validate is copied into the registered one."""

    class Replacing(SimpleConfig):
        def validate(self, cfg: SimpleConfig) -> SimpleConfig:
            return SimpleConfig(name=cfg.name.upper(), count=cfg.count)

    (tmp_path / "simple.json").write_text(json.dumps({"name": "low", "count": 2}), encoding="utf-8")
    config = Replacing()

    ConfigManager("testapp", root_dir=tmp_path).register("simple", config)

    assert config.name == "LOW"
    assert config.count == 2


def test_after_load_runs_once_per_load(manager: ConfigManager) -> None:
    """Test that the after-load hook runs on each load."""
    config = manager.register("simple", SimpleConfig())
    assert config.loaded == 1

    manager.load("simple")

    assert config.loaded == 1


def test_load_failure_regenerates_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    """Test that an unexpected error while loading falls back to defaults."""

    class Exploding(SimpleConfig):
        def after_load(self) -> None:
            raise RuntimeError("boom")

    (tmp_path / "simple.json").write_text(json.dumps({"name": "custom", "count": 5}), encoding="utf-8")
    manager = ConfigManager("testapp", root_dir=tmp_path)

    with caplog.at_level(logging.WARNING, logger="testapp"):
        config = manager.register("simple", Exploding())

    assert config.name == "simple"
    assert _read(tmp_path / "simple.json")["name"]["value"] == "simple"
    assert "Regenerating defaults" in caplog.text


def test_save_dirty_only_writes_dirty(manager: ConfigManager) -> None:
    """Test that clean configs are skipped by save_dirty."""
    first = manager.register("first", SimpleConfig())
    manager.register("second", SimpleConfig())
    first.count = 10
    first.mark_dirty()
    second_path = manager.file_path("second")
    second_path.write_text("sentinel", encoding="utf-8")

    manager.save_dirty()

    assert _read(manager.file_path("first"))["count"] == {"value": 10}
    assert second_path.read_text(encoding="utf-8") == "sentinel"
    assert not first.is_dirty


def test_save_all(manager: ConfigManager) -> None:
    """Test that save_all writes every config."""
    first = manager.register("first", SimpleConfig())
    second = manager.register("second", ExampleConfig())
    first.name = "one"
    second.some_string = "two"

    manager.save_all()

    assert _read(manager.file_path("first"))["name"]["value"] == "one"
    assert _read(manager.file_path("second"))["some_string"]["value"] == "two"


def test_before_save_runs(manager: ConfigManager) -> None:
    """Test that the before-save hook can adjust values before writing."""

    class Stamped(SimpleConfig):
        def before_save(self) -> None:
            self.count += 100

    config = manager.register("stamped", Stamped())

    assert config.count == 101
    assert _read(manager.file_path("stamped"))["count"]["value"] == 101


def test_save_failure_raises(manager: ConfigManager, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that an I/O failure while saving is surfaced to the caller."""
    config = manager.register("simple", SimpleConfig())
    config.mark_dirty()

    def failing_write(path: Path, instance: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(manager.codec, "write", failing_write)

    with pytest.raises(ConfigSaveError, match="disk full"):
        manager.save("simple")
    assert config.is_dirty


def test_yaml_codec(tmp_path: Path) -> None:
    """Test a manager configured with the YAML codec."""
    manager = ConfigManager("testapp", root_dir=tmp_path, codec=YamlCommentCodec())

    manager.register("simple", SimpleConfig())

    path = manager.file_path("simple")
    assert path.name == "simple.yml"
    assert path.read_text(encoding="utf-8").startswith("name:\n  value: simple\n  comment: Display name\n")


def test_unknown_name(manager: ConfigManager) -> None:
    """Test lookups of names that were never registered."""
    with pytest.raises(KeyError):
        manager.load("missing")
    with pytest.raises(KeyError):
        manager.get("missing")


def test_root_dir_resolution(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test explicit, environment and platform root directories."""
    monkeypatch.setenv(CONFIG_DIR_ENV_VAR, str(tmp_path / "env"))

    assert resolve_root_dir("app", tmp_path / "explicit") == tmp_path / "explicit"
    assert resolve_root_dir("app") == tmp_path / "env" / "app"

    monkeypatch.delenv(CONFIG_DIR_ENV_VAR)
    assert resolve_root_dir("app").name == "app"
