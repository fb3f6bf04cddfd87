"""Top-level application orchestrator."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.policy_runtime import configure_logging, ensure_runtime_dirs, load_effective_config
from goals.engine import GoalEngine
from goals.profiles import ProfileProvider
from goals.stores.cache import CachedRecordStore
from goals.stores.record_store import RecordStore, SQLRecordStore
from goals.stores.sql_store import SQLStore
from goals.templates import TemplateCatalog, load_templates_file
from governance.audit_logger import AuditLogger

ROOT_ENV_VAR = "GOAL_ENGINE_ROOT"


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    paths: dict[str, Path]
    store: RecordStore
    engine: GoalEngine
    catalog: TemplateCatalog
    profiles: ProfileProvider
    audit_logger: AuditLogger


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None) -> None:
        env_root = os.environ.get(ROOT_ENV_VAR)
        default_root = Path(env_root) if env_root else Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()

    def build(self, configure_logs: bool = True) -> RuntimeBundle:
        config = load_effective_config(self.root)
        if configure_logs:
            configure_logging(config)
        paths = ensure_runtime_dirs(self.root, config)
        engine_cfg = config.get("engine", {})

        sql_store = SQLStore(paths["db_path"])
        sql_store.create_all()
        store: RecordStore = SQLRecordStore(sql_store)
        if engine_cfg.get("cache_enabled", True):
            store = CachedRecordStore(store)

        catalog = TemplateCatalog(store)
        if config.get("templates", {}).get("seed_on_startup", True):
            catalog.seed(load_templates_file(paths["catalog_path"]))

        profiles = ProfileProvider(store)
        audit_logger = AuditLogger(paths["audit_log_path"])
        engine = GoalEngine(
            store=store,
            profiles=profiles,
            catalog=catalog,
            audit_logger=audit_logger,
            max_track_retries=int(engine_cfg.get("max_track_retries", 3)),
            history_limit=int(engine_cfg.get("history_limit", 10)),
        )

        return RuntimeBundle(
            config=config,
            paths=paths,
            store=store,
            engine=engine,
            catalog=catalog,
            profiles=profiles,
            audit_logger=audit_logger,
        )
