"""Configuration for graph construction and the Connections game."""

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Invalid configuration file or value."""


# Graph construction
MAX_CONNECTIONS_PER_NODE = 5
MAX_GENRE_CLUSTERS = 24
MIN_CLUSTER_MEMBERS = 3
MIN_NODE_SIZE = 2.0
MAX_NODE_SIZE = 15.0

# Challenge generation
DEFAULT_MIN_HOPS = 3
DEFAULT_MAX_HOPS = 6
MAX_CHALLENGE_ATTEMPTS = 50

# Environment overrides
ENV_MAX_DEGREE = "CONSTELLATION_MAX_DEGREE"
ENV_MIN_HOPS = "CONSTELLATION_MIN_HOPS"
ENV_MAX_HOPS = "CONSTELLATION_MAX_HOPS"


@dataclass(frozen=True)
class GraphConfig:
    max_degree: int = MAX_CONNECTIONS_PER_NODE
    max_clusters: int = MAX_GENRE_CLUSTERS
    min_cluster_members: int = MIN_CLUSTER_MEMBERS
    min_node_size: float = MIN_NODE_SIZE
    max_node_size: float = MAX_NODE_SIZE


@dataclass(frozen=True)
class ChallengeConfig:
    min_hops: int = DEFAULT_MIN_HOPS
    max_hops: int = DEFAULT_MAX_HOPS
    prefer_popular: bool = True
    max_attempts: int = MAX_CHALLENGE_ATTEMPTS


@dataclass(frozen=True)
class GameplayConfig:
    allow_backtrack: bool = True
    show_optimal_path: bool = True


@dataclass(frozen=True)
class InputConfig:
    autocomplete_limit: int = 8
    min_query_length: int = 1


@dataclass(frozen=True)
class ScoringConfig:
    """Competitive-mode scoring constants. Time values are in seconds."""

    base_score: int = 1000
    hop_penalty: int = 100
    time_bonus: int = 2
    guess_penalty: int = 10
    hint_cost: int = 50
    time_limit: int = 180


@dataclass(frozen=True)
class ConnectionsConfig:
    graph: GraphConfig = field(default_factory=GraphConfig)
    challenge: ChallengeConfig = field(default_factory=ChallengeConfig)
    gameplay: GameplayConfig = field(default_factory=GameplayConfig)
    input: InputConfig = field(default_factory=InputConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)


# JSON section name -> (ConnectionsConfig attribute, dataclass)
_SECTIONS = {
    "graph": ("graph", GraphConfig),
    "challenge": ("challenge", ChallengeConfig),
    "gameplay": ("gameplay", GameplayConfig),
    "input": ("input", InputConfig),
    "competitive": ("scoring", ScoringConfig),
}


def _build_section(section_cls, values: dict, section_name: str):
    """Instantiate a config section, rejecting unknown keys."""
    known = {f.name for f in fields(section_cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(
            f"Unknown keys in '{section_name}' section: {', '.join(sorted(unknown))}"
        )
    return section_cls(**values)


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def apply_env_overrides(config: ConnectionsConfig) -> ConnectionsConfig:
    """Apply CONSTELLATION_* environment variables on top of a config."""
    max_degree = _env_int(ENV_MAX_DEGREE)
    min_hops = _env_int(ENV_MIN_HOPS)
    max_hops = _env_int(ENV_MAX_HOPS)

    if max_degree is not None:
        config = replace(config, graph=replace(config.graph, max_degree=max_degree))
    if min_hops is not None:
        config = replace(
            config, challenge=replace(config.challenge, min_hops=min_hops)
        )
    if max_hops is not None:
        config = replace(
            config, challenge=replace(config.challenge, max_hops=max_hops)
        )
    return config


def validate_config(config: ConnectionsConfig) -> ConnectionsConfig:
    """
    Check value ranges.

    Raises:
        ConfigError: If any value is out of range
    """
    if config.graph.max_degree < 1:
        raise ConfigError("graph.max_degree must be at least 1")
    if config.graph.max_clusters < 0:
        raise ConfigError("graph.max_clusters must not be negative")
    if config.graph.min_node_size > config.graph.max_node_size:
        raise ConfigError("graph.min_node_size must not exceed graph.max_node_size")
    if config.challenge.min_hops < 1:
        raise ConfigError("challenge.min_hops must be at least 1")
    if config.challenge.min_hops > config.challenge.max_hops:
        raise ConfigError("challenge.min_hops must not exceed challenge.max_hops")
    if config.challenge.max_attempts < 1:
        raise ConfigError("challenge.max_attempts must be at least 1")
    if config.input.autocomplete_limit < 1:
        raise ConfigError("input.autocomplete_limit must be at least 1")
    return config


def load_config(filepath: Path | None = None) -> ConnectionsConfig:
    """
    Load configuration from an optional JSON file plus environment overrides.

    Args:
        filepath: Path to a JSON file with any of the sections graph,
                  challenge, gameplay, input, competitive

    Returns:
        Validated ConnectionsConfig

    Raises:
        ConfigError: If the file is malformed or a value is invalid
        FileNotFoundError: If filepath is given but does not exist
    """
    config = ConnectionsConfig()

    if filepath is not None:
        if not filepath.exists():
            error_msg = f"File not found: {filepath}"
            logger.error(error_msg)
            raise FileNotFoundError(error_msg)

        try:
            with open(filepath, encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {filepath}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigError(f"Top level of {filepath} must be an object")

        for section_name, values in raw.items():
            if section_name not in _SECTIONS:
                raise ConfigError(f"Unknown config section: {section_name}")
            if not isinstance(values, dict):
                raise ConfigError(f"Section '{section_name}' must be an object")
            attr, section_cls = _SECTIONS[section_name]
            try:
                section = _build_section(section_cls, values, section_name)
            except TypeError as e:
                raise ConfigError(f"Invalid '{section_name}' section: {e}") from e
            config = replace(config, **{attr: section})

        logger.info("Loaded configuration from %s", filepath)

    return validate_config(apply_env_overrides(config))
