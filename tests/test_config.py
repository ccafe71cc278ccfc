"""Settings registry, startup self-test and logging configuration."""

import json
import logging

from supplier_portal.core import secrets
from supplier_portal.core.startup_checks import run_startup_checks


# ─── Settings ───────────────────────────────────────────────────────────────

class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("NGAUGE_BASE_URL", raising=False)
        assert secrets.get_key("ngauge_base_url") == "https://nooms.infoveave.app/api/v10"
        assert secrets.get_int("ngauge_timeout") == 15

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("NGAUGE_BASE_URL", "https://ngauge.test/api")
        assert secrets.get_key("ngauge_base_url") == "https://ngauge.test/api"

    def test_unknown_setting(self):
        assert secrets.get_key("nope") == ""

    def test_bad_int_uses_default(self, monkeypatch):
        monkeypatch.setenv("PORTAL_PAGE_SIZE", "lots")
        assert secrets.get_int("page_size", 10) == 50

    def test_bool(self, monkeypatch):
        monkeypatch.setenv("PORTAL_BOARD_READONLY", "Yes")
        assert secrets.get_bool("board_readonly")
        monkeypatch.setenv("PORTAL_BOARD_READONLY", "0")
        assert not secrets.get_bool("board_readonly")

    def test_dashboard_save_off_by_default(self, monkeypatch):
        monkeypatch.delenv("PORTAL_DASHBOARD_SAVE", raising=False)
        assert not secrets.get_bool("dashboard_board_save")
        monkeypatch.setenv("PORTAL_DASHBOARD_SAVE", "true")
        assert secrets.get_bool("dashboard_board_save")

    def test_mask(self):
        assert secrets.mask("") == "(not set)"
        assert secrets.mask("short") == "shor****"
        assert secrets.mask("a-much-longer-secret") == "a-much-l****(20 chars)"

    def test_validate_all_hides_sensitive_values(self, monkeypatch):
        monkeypatch.setenv("SECRET_KEY", "super-secret-signing-key")
        report = secrets.validate_all()
        entry = report["secrets"]["secret_key"]
        assert entry["from_env"]
        assert "super" not in entry["masked"]
        assert not any("SECRET_KEY" in w for w in report["warnings"])

    def test_validate_all_warns_on_default_secret(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        report = secrets.validate_all()
        assert any("SECRET_KEY" in w for w in report["warnings"])
        assert report["set"] == report["total"]


# ─── Startup checks ─────────────────────────────────────────────────────────

class TestStartupChecks:
    def test_app_passes(self, app):
        result = run_startup_checks(app)
        assert result["failed"] == 0
        assert result["passed"] >= 3

    def test_bad_base_url_fails(self, monkeypatch):
        monkeypatch.setenv("NGAUGE_BASE_URL", "ftp://nowhere")
        result = run_startup_checks()
        assert result["failed"] == 1

    def test_missing_gateway_fails(self, app):
        app.extensions.pop("ngauge")
        result = run_startup_checks(app)
        assert any("gateway" in msg for status, msg in result["details"] if status == "FAIL")


# ─── Logging ────────────────────────────────────────────────────────────────

class TestLogging:
    def test_json_formatter_includes_extras(self):
        from logging_config import JSONFormatter
        record = logging.LogRecord("portal.board", logging.INFO, __file__, 10,
                                   "moved %s", ("7",), None)
        record.item_id = "7"
        record.route = "/api/board/work-order/move"
        entry = json.loads(JSONFormatter().format(record))
        assert entry["msg"] == "moved 7"
        assert entry["level"] == "INFO"
        assert entry["item_id"] == "7"
        assert entry["route"] == "/api/board/work-order/move"

    def test_human_formatter(self):
        from logging_config import HumanFormatter
        record = logging.LogRecord("portal", logging.WARNING, __file__, 1, "careful", (), None)
        line = HumanFormatter().format(record)
        assert "[W] portal: careful" in line

    def test_setup_logging_writes_rotating_file(self, tmp_path):
        from logging_config import setup_logging
        root = logging.getLogger()
        saved = (root.level, list(root.handlers))
        try:
            setup_logging(level="DEBUG", json_logs=True, log_dir=str(tmp_path))
            logging.getLogger("portal.test").info("hello file")
            for h in root.handlers:
                h.flush()
            lines = (tmp_path / "portal.log").read_text().strip().splitlines()
            assert any(json.loads(l)["msg"] == "hello file" for l in lines)
            assert logging.getLogger("werkzeug").level == logging.WARNING
        finally:
            for h in root.handlers:
                h.close()
            root.handlers[:] = saved[1]
            root.setLevel(saved[0])
