"""Application object: configuration loading and component wiring."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/settings.yaml"


class IndexWatch:
    """Central application class that wires configuration into every module.

    Usage::

        app = IndexWatch()
        app.initialize()
        monitor = app.get_recovery_monitor()
        report = asyncio.run(monitor.generate_recovery_report(app.site_url))
    """

    def __init__(
        self,
        config_path: str = DEFAULT_CONFIG_PATH,
        env_path: str = ".env",
    ):
        self._config_path = config_path
        self._env_path = env_path
        self.config: dict[str, Any] = {}
        self._initialized = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, with_database: bool = True) -> None:
        """Load environment and configuration, then prepare the database."""
        if self._initialized:
            return

        env_file = Path(self._env_path)
        if env_file.exists():
            load_dotenv(env_file)
            logger.info("Loaded environment from %s", self._env_path)

        self.config = self._load_config()

        if with_database:
            from indexwatch.database import init_db
            db_cfg = self.config.get("database", {})
            init_db(database_url=db_cfg.get("url"), echo=db_cfg.get("echo", False))

        self._initialized = True
        logger.info("IndexWatch initialised.")

    def _load_config(self) -> dict[str, Any]:
        config_file = Path(self._config_path)
        if not config_file.exists():
            logger.warning("Config file not found: %s, using defaults.", self._config_path)
            return {}
        with open(config_file, "r", encoding="utf-8") as fh:
            config = yaml.safe_load(fh) or {}
        logger.info("Configuration loaded from %s", self._config_path)
        return config

    def _section(self, name: str) -> dict[str, Any]:
        return self.config.get(name) or {}

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def site_url(self) -> str:
        return os.getenv("GSC_SITE_URL") or self._section("search_console").get("site_url", "")

    @property
    def drop_threshold(self) -> float:
        return float(self._section("monitoring").get("drop_threshold", 0.20))

    @property
    def timeout(self) -> float:
        return float(self._section("monitoring").get("timeout", 30))

    @property
    def organization(self) -> dict[str, Any]:
        return dict(self._section("organization"))

    # ------------------------------------------------------------------
    # Component factories
    # ------------------------------------------------------------------

    def get_search_console(self):
        from indexwatch.integrations.search_console import SearchConsoleClient
        gsc_cfg = self._section("search_console")
        return SearchConsoleClient(
            credentials_path=os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or gsc_cfg.get("credentials_path"),
            timeout=self.timeout,
        )

    def get_diagnostics(self):
        from indexwatch.modules.deindex_recovery.diagnostics import SiteDiagnostics
        return SiteDiagnostics(
            timeout=self.timeout,
            user_agent=self._section("monitoring").get("user_agent", "IndexWatchBot/1.0"),
        )

    def get_recovery_monitor(self, persist: bool = True, drop_threshold: Optional[float] = None):
        from indexwatch.modules.deindex_recovery.reporting import DeindexRecoveryMonitor
        return DeindexRecoveryMonitor(
            search_console=self.get_search_console(),
            diagnostics=self.get_diagnostics(),
            drop_threshold=drop_threshold if drop_threshold is not None else self.drop_threshold,
            persist=persist,
        )

    def get_recovery_executor(self):
        from indexwatch.modules.deindex_recovery.recovery import RecoveryExecutor
        return RecoveryExecutor(search_console=self.get_search_console())

    def get_wordpress_client(self):
        """Build a WordPressClient; the caller owns closing it."""
        from indexwatch.integrations.wordpress import WordPressClient
        wp_cfg = self._section("wordpress")
        return WordPressClient(
            base_url=os.getenv("WP_URL") or wp_cfg.get("url"),
            username=os.getenv("WP_USERNAME") or wp_cfg.get("username"),
            app_password=os.getenv("WP_APP_PASSWORD"),
            timeout=self.timeout,
        )

    def get_schema_manager(self, client=None):
        from indexwatch.modules.schema_manager.wordpress_schema import WordPressSchemaManager
        client = client or self.get_wordpress_client()
        return WordPressSchemaManager(
            client,
            site_url=self.organization.get("url") or client.base_url,
            organization=self.organization,
        )

    def get_scheduler(self):
        from indexwatch.scheduler import ReportScheduler
        sched_cfg = self._section("scheduler")
        return ReportScheduler(
            job_store_url=sched_cfg.get("job_store", "sqlite:///data/scheduler_jobs.db"),
            timezone=sched_cfg.get("timezone", "UTC"),
            max_workers=sched_cfg.get("max_workers", 2),
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self) -> dict[str, dict[str, Any]]:
        """Return health status of the configured components."""
        from indexwatch.utils.helpers import mask_secret

        self._ensure_initialized()
        status: dict[str, dict[str, Any]] = {}

        try:
            from sqlalchemy import text
            from indexwatch.database import get_session
            with get_session() as session:
                session.execute(text("SELECT 1"))
            status["database"] = {"status": "ok", "details": "connected"}
        except Exception as exc:
            status["database"] = {"status": "error", "details": str(exc)}

        gsc_cfg = self._section("search_console")
        creds = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or gsc_cfg.get("credentials_path", "")
        token = os.getenv("GSC_ACCESS_TOKEN", "")
        has_token = bool(token)
        status["search_console"] = {
            "status": "ok" if has_token or (creds and Path(creds).is_file()) else "warning",
            "details": f"access token {mask_secret(token)}" if has_token else (creds or "no credentials"),
        }

        wp_url = os.getenv("WP_URL") or self._section("wordpress").get("url", "")
        wp_auth = bool(os.getenv("WP_APP_PASSWORD"))
        status["wordpress"] = {
            "status": "ok" if wp_url and wp_auth else "warning",
            "details": f"{wp_url or 'no url'} ({'authenticated' if wp_auth else 'no app password'})",
        }

        status["config"] = {
            "status": "ok" if self.config else "warning",
            "details": f"{len(self.config)} sections loaded" if self.config else "no config",
        }
        return status

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("Call initialize() before using the application.")


def run_weekly_report(site_url: str, config_path: str = DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    """Scheduler entry point: build and persist one recovery report."""
    from indexwatch.modules.deindex_recovery.history import get_baseline

    app = IndexWatch(config_path=config_path)
    app.initialize()
    monitor = app.get_recovery_monitor(persist=True)
    baseline = get_baseline(site_url)
    report = asyncio.run(
        monitor.generate_recovery_report(site_url, {"baseline": baseline})
    )
    logger.info("Weekly report for %s: %s", site_url, report["health"])
    return report
