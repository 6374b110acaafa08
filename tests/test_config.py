import json
import os
from decimal import Decimal

import pytest

from carbon.config import EngineConfig, RefundPolicy, load_config, parse_refund_policy
from carbon.errors import ConfigurationError


def test_defaults(tmp_path):
    config = load_config(env_file=str(tmp_path / "missing.env"))

    assert config.baseline_tonnes == Decimal("120")
    assert config.refund_policy == RefundPolicy.NET
    assert config.financing_threshold == 70
    assert config.workers == 1
    assert config.factor_table.factor_for("fuel") == Decimal("0.82")


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("CARBON_BASELINE_TONNES", "200")
    monkeypatch.setenv("CARBON_REFUND_POLICY", "Exclude")
    monkeypatch.setenv("CARBON_FINANCING_THRESHOLD", "80")
    monkeypatch.setenv("CARBON_WORKERS", "3")
    monkeypatch.setenv("CARBON_DEFAULT_FACTOR", "0.25")

    config = load_config(env_file=str(tmp_path / "missing.env"))

    assert config.baseline_tonnes == Decimal("200")
    assert config.refund_policy == RefundPolicy.EXCLUDE
    assert config.financing_threshold == 80
    assert config.workers == 3
    assert config.factor_table.default_factor == Decimal("0.25")
    assert config.factor_table.factor_for("fuel") == Decimal("0.82")


def test_env_file_is_read(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("CARBON_BASELINE_TONNES=90\n")

    config = load_config(env_file=str(env_file))
    os.environ.pop("CARBON_BASELINE_TONNES", None)

    assert config.baseline_tonnes == Decimal("90")


def test_factors_file_and_keyword_overrides(tmp_path):
    factors = tmp_path / "factors.json"
    factors.write_text(json.dumps({"factors": {"steel": 1.9}, "default_factor": 0.3}))

    config = load_config(
        env_file=str(tmp_path / "missing.env"),
        factors_file=str(factors),
        baseline_tonnes="60",
        workers=None,
    )

    assert config.factor_table.categories == ("steel",)
    assert config.factor_table.default_factor == Decimal("0.3")
    assert config.baseline_tonnes == Decimal("60")
    assert config.workers == 1


@pytest.mark.parametrize("name,value", [
    ("CARBON_BASELINE_TONNES", "0"),
    ("CARBON_BASELINE_TONNES", "lots"),
    ("CARBON_REFUND_POLICY", "ignore"),
    ("CARBON_FINANCING_THRESHOLD", "abc"),
    ("CARBON_FACTORS_FILE", "/does/not/exist.json"),
])
def test_invalid_environment_is_a_configuration_error(tmp_path, monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError):
        load_config(env_file=str(tmp_path / "missing.env"))


def test_parse_refund_policy():
    assert parse_refund_policy("zero") == RefundPolicy.ZERO
    assert parse_refund_policy(RefundPolicy.NET) == RefundPolicy.NET
    with pytest.raises(ConfigurationError):
        parse_refund_policy("sometimes")


def test_validated_normalizes_types():
    config = EngineConfig(baseline_tonnes="150", refund_policy="zero", financing_threshold="65").validated()

    assert config.baseline_tonnes == Decimal("150")
    assert config.refund_policy is RefundPolicy.ZERO
    assert config.financing_threshold == 65


@pytest.mark.parametrize("threshold", ["abc", "70.5", None, 150])
def test_bad_financing_threshold_is_a_configuration_error(threshold):
    with pytest.raises(ConfigurationError):
        EngineConfig(financing_threshold=threshold).validated()
