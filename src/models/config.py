"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# NudeNet class indices for exposed-content labels
DEFAULT_SENSITIVE_CLASSES = [2, 3, 4, 6, 14]


@dataclass
class DetectorConfig:
    """ONNX detector configuration."""
    model: str = ""
    labels: Optional[List[str]] = None
    labels_file: Optional[str] = None
    input_size: int = 320
    providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])
    sensitive_classes: List[int] = field(default_factory=lambda: list(DEFAULT_SENSITIVE_CLASSES))
    conf_threshold: float = 0.6
    iou_threshold: float = 0.45

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectorConfig":
        return cls(
            model=d.get("model", ""),
            labels=d.get("labels"),
            labels_file=d.get("labels_file"),
            input_size=d.get("input_size", 320),
            providers=d.get("providers") or ["CPUExecutionProvider"],
            sensitive_classes=(
                list(d["sensitive_classes"]) if d.get("sensitive_classes") is not None
                else list(DEFAULT_SENSITIVE_CLASSES)
            ),
            conf_threshold=d.get("conf_threshold", 0.6),
            iou_threshold=d.get("iou_threshold", 0.45),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "model": self.model,
            "input_size": self.input_size,
            "providers": self.providers,
            "sensitive_classes": self.sensitive_classes,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
        }
        if self.labels is not None:
            d["labels"] = self.labels
        if self.labels_file is not None:
            d["labels_file"] = self.labels_file
        return d

    def resolve_labels(self) -> List[str]:
        """
        Return the class labels, reading labels_file (one label per line)
        when no inline list is configured.
        """
        if self.labels:
            return list(self.labels)
        if self.labels_file:
            with open(self.labels_file, "r") as f:
                return [line.strip() for line in f if line.strip()]
        return []


@dataclass
class ScanConfig:
    """Video scan defaults."""
    mode: str = "sampled"
    sample_interval: float = 5.0
    binary_search_window: float = 5.0
    binary_search_depth: int = 3
    human_check: str = "hog"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScanConfig":
        return cls(
            mode=d.get("mode", "sampled"),
            sample_interval=d.get("sample_interval", 5.0),
            binary_search_window=d.get("binary_search_window", 5.0),
            binary_search_depth=d.get("binary_search_depth", 3),
            human_check=d.get("human_check", "hog"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "sample_interval": self.sample_interval,
            "binary_search_window": self.binary_search_window,
            "binary_search_depth": self.binary_search_depth,
            "human_check": self.human_check,
        }


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ServerConfig":
        return cls(
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_path: str = "logs/safescan.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            detector=DetectorConfig.from_dict(d.get("detector", {}) or {}),
            scan=ScanConfig.from_dict(d.get("scan", {}) or {}),
            server=ServerConfig.from_dict(d.get("server", {}) or {}),
            log_path=d.get("log_path", "logs/safescan.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary."""
        return {
            "detector": self.detector.to_dict(),
            "scan": self.scan.to_dict(),
            "server": self.server.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
