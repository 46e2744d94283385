"""Load upload settings from the CI environment and an optional YAML file."""

import logging
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from ciresults.test_uploader.errors import ConfigurationError
from ciresults.test_uploader.models.settings import Settings

logger = logging.getLogger(__name__)

ENV_VARS: dict[str, str] = {
    "project_id": "BIGQUERY_PROJECT",
    "dataset": "BIGQUERY_DATASET",
    "table": "BIGQUERY_TABLE",
    "bucket": "TEST_RESULTS_BUCKET",
    "repo": "CIRCLE_REPOSITORY_URL",
    "stage": "CIRCLE_STAGE",
    "branch": "CIRCLE_BRANCH",
    "run": "CIRCLE_BUILD_NUM",
    "commit": "CIRCLE_SHA1",
    "load_timeout": "BIGQUERY_LOAD_TIMEOUT",
}


def load_config_file(config_file: Path) -> dict[str, object]:
    """Read settings from a YAML mapping keyed by setting name.

    Args:
        config_file: Path to the YAML file

    Returns:
        Mapping of setting name to value

    Raises:
        ConfigurationError: If the file is missing, unparsable or not a mapping

    """
    try:
        with config_file.open() as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_file}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_file} must contain a mapping")

    unknown = sorted(set(data) - set(ENV_VARS))
    if unknown:
        raise ConfigurationError(
            f"Unknown settings in {config_file}: {', '.join(map(str, unknown))}"
        )
    return data


def load_settings(
    environ: Mapping[str, str],
    config_file: Path | None = None,
    overrides: Mapping[str, object] | None = None,
) -> Settings:
    """Build settings for one run.

    Values from ``config_file`` are overridden by non-empty environment
    variables, which are overridden by ``overrides`` (command-line options).
    Empty values count as missing.

    Raises:
        ConfigurationError: If any required setting is missing or invalid

    """
    values: dict[str, object] = {}
    if config_file is not None:
        logger.info(f"Reading settings from {config_file}")
        values.update(load_config_file(config_file))

    for field, env_var in ENV_VARS.items():
        env_value = environ.get(env_var, "")
        if env_value:
            values[field] = env_value

    for field, value in (overrides or {}).items():
        if value is not None:
            values[field] = value

    values = {k: v for k, v in values.items() if v not in (None, "")}

    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(_describe_errors(e)) from e


def _describe_errors(error: ValidationError) -> str:
    """Summarize validation errors by setting and environment variable."""
    problems = []
    for item in error.errors():
        field = str(item["loc"][0]) if item["loc"] else "?"
        env_var = ENV_VARS.get(field)
        name = f"{field} ({env_var})" if env_var else field
        if item["type"] == "missing":
            problems.append(f"{name} is not set")
        else:
            problems.append(f"{name}: {item['msg']}")
    return "Invalid settings: " + "; ".join(problems)
