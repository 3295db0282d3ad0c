"""Configuration management for netconductor."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class StoreConfig:
    """Topology store configuration."""

    backend: str = "file"  # "file" or "rest"
    root_dir: Path = field(default_factory=lambda: Path("./topologies"))
    netomox_exp_host: str = field(
        default_factory=lambda: os.environ.get("NETOMOX_EXP_HOST", "netomox-exp:9292")
    )
    batfish_wrapper_host: str = field(
        default_factory=lambda: os.environ.get("BATFISH_WRAPPER_HOST", "batfish-wrapper:5000")
    )
    timeout: float = 14400.0  # 4h, topology generation is slow


@dataclass
class PartitionConfig:
    """Partition analysis configuration."""

    layer: str = "layer3"
    min_score: int = 0


@dataclass
class CandidateConfig:
    """Candidate topology generation configuration."""

    default_max_bandwidth: float = 8e8  # bps, 80% of 10GbE
    phase_number: int = 1
    candidate_number: int = 3


@dataclass
class Config:
    """Main configuration for netconductor."""

    store: StoreConfig = field(default_factory=StoreConfig)
    partition: PartitionConfig = field(default_factory=PartitionConfig)
    candidate: CandidateConfig = field(default_factory=CandidateConfig)
    log_level: str = field(
        default_factory=lambda: os.environ.get("NETCONDUCTOR_LOG_LEVEL", "info")
    )
    verbose: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.store.root_dir, str):
            self.store.root_dir = Path(self.store.root_dir)

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Load configuration from JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()
        if "log_level" in data:
            config.log_level = data["log_level"]
        if "verbose" in data:
            config.verbose = data["verbose"]

        if "store" in data:
            for key, value in data["store"].items():
                if hasattr(config.store, key):
                    setattr(config.store, key, value)
            config.store.root_dir = Path(config.store.root_dir)

        if "partition" in data:
            for key, value in data["partition"].items():
                if hasattr(config.partition, key):
                    setattr(config.partition, key, value)

        if "candidate" in data:
            for key, value in data["candidate"].items():
                if hasattr(config.candidate, key):
                    setattr(config.candidate, key, value)

        return config

    def save(self, path: Path) -> None:
        """Save configuration to JSON file."""
        data = {
            "log_level": self.log_level,
            "verbose": self.verbose,
            "store": {
                "backend": self.store.backend,
                "root_dir": str(self.store.root_dir),
                "netomox_exp_host": self.store.netomox_exp_host,
                "batfish_wrapper_host": self.store.batfish_wrapper_host,
                "timeout": self.store.timeout,
            },
            "partition": {
                "layer": self.partition.layer,
                "min_score": self.partition.min_score,
            },
            "candidate": {
                "default_max_bandwidth": self.candidate.default_max_bandwidth,
                "phase_number": self.candidate.phase_number,
                "candidate_number": self.candidate.candidate_number,
            },
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(data, f, indent=2)


_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        config_path = Path(os.environ.get("NETCONDUCTOR_CONFIG", ".netconductor.json"))
        _config = Config.from_file(config_path)
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
