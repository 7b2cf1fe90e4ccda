"""
Tests for PayrollConfig and the YAML loader.
"""

import pytest
import yaml

from ledger_config.loader import (
    CONFIG_PATH_ENV,
    DEFAULTS_PATH,
    get_active_config,
    load_payroll_config,
)
from ledger_config.schema import PayrollConfig


class TestPayrollConfig:

    def test_defaults(self):
        config = PayrollConfig.with_defaults()
        assert config.expense_category == "Payroll"
        assert config.first_half_end_day == 15
        assert config.apply_loan_payments_on_save is True
        assert config.reject_duplicate_periods is True
        assert config.compensate_on_failure is True

    def test_format_note(self):
        note = PayrollConfig().format_note("Ana Reyes", "2025-01-01", "2025-01-15")
        assert note == "Payroll: Ana Reyes (2025-01-01 to 2025-01-15)"

    def test_from_dict(self):
        config = PayrollConfig.from_dict({"expense_category": "Salaries", "first_half_end_day": 14})
        assert config.expense_category == "Salaries"
        assert config.first_half_end_day == 14

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="overtime_rate"):
            PayrollConfig.from_dict({"overtime_rate": 1.25})

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"expense_category": "  "}, "expense_category"),
            ({"note_template": "Payroll for {employee}"}, "period_start"),
            ({"first_half_end_day": 0}, "first_half_end_day"),
            ({"first_half_end_day": 28}, "first_half_end_day"),
        ],
    )
    def test_invalid_values(self, overrides, message):
        with pytest.raises(ValueError, match=message):
            PayrollConfig(**overrides)


class TestLoader:

    def test_packaged_defaults_match_schema(self):
        assert load_payroll_config(DEFAULTS_PATH) == PayrollConfig.with_defaults()

    def test_nested_under_payroll_key(self, tmp_path):
        path = tmp_path / "payroll.yaml"
        path.write_text(yaml.safe_dump({"payroll": {"compensate_on_failure": False}}))
        assert load_payroll_config(path).compensate_on_failure is False

    def test_top_level_keys(self, tmp_path):
        path = tmp_path / "payroll.yaml"
        path.write_text("expense_category: Wages\n")
        assert load_payroll_config(str(path)).expense_category == "Wages"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_payroll_config(path) == PayrollConfig()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_payroll_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_payroll_config(tmp_path / "nope.yaml")

    def test_active_config_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "override.yaml"
        path.write_text("payroll:\n  apply_loan_payments_on_save: false\n")
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))
        assert get_active_config().apply_loan_payments_on_save is False

    def test_active_config_defaults(self, monkeypatch):
        monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
        assert get_active_config() == PayrollConfig.with_defaults()
