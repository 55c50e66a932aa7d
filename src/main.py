"""
SafeScan command line entry point.

Detects sensitive content in images and videos with a YOLOv8-style ONNX
detector, or serves the same operations over HTTP.

Usage:
    python src/main.py detect photo.jpg
    python src/main.py scan clip.mp4 --mode binary_search
    python src/main.py serve --port 5000

Arguments:
    --config: Path to configuration file (layered over config/default.yaml)
    --model: Override detector.model from the configuration
"""

import argparse
import json
import logging
import os
import signal
import sys
from typing import Any, Dict, Optional, Tuple

import uvicorn
import yaml

from inference.errors import VisionError
from inference.registry import DetectorRegistry
from models.config import Config
from models.scan import ScanMode
from ops.logging import setup_logging
from pipeline.engine import ScanSession
from pipeline.service import analyze_video, detect_image
from web.app import create_app
from web.state import state as web_state

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
VALID_HUMAN_CHECKS = ['hog']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        config_dir = os.path.dirname(config_path)
        base_path = os.path.join(config_dir, "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(config_dir, "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        explicit_is_layer = os.path.abspath(config_path) in (
            os.path.abspath(local_overrides_path),
            os.path.abspath(base_path),
        )
        if os.path.exists(config_path) and not explicit_is_layer:
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['detector', 'scan', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Detector settings
    detector = config.get('detector') or {}
    if not isinstance(detector.get('model', ''), str):
        return False, "detector.model must be a string path"

    labels = detector.get('labels')
    labels_file = detector.get('labels_file')
    if labels is None and labels_file is None:
        return False, "detector.labels or detector.labels_file is required"
    if labels is not None:
        if not isinstance(labels, list) or not labels or not all(isinstance(x, str) for x in labels):
            return False, "detector.labels must be a non-empty list of strings"
    if labels_file is not None and not isinstance(labels_file, str):
        return False, "detector.labels_file must be a string path"

    if 'input_size' in detector and not _is_positive_int(detector['input_size']):
        return False, "detector.input_size must be a positive integer"

    for key in ('conf_threshold', 'iou_threshold'):
        if key in detector:
            value = detector[key]
            if not _is_number(value) or not (0 <= value <= 1):
                return False, f"detector.{key} must be between 0 and 1"

    if 'sensitive_classes' in detector:
        classes = detector['sensitive_classes']
        if not isinstance(classes, list) or not all(
            isinstance(c, int) and not isinstance(c, bool) and c >= 0 for c in classes
        ):
            return False, "detector.sensitive_classes must be a list of non-negative integers"
        if labels is not None and any(c >= len(labels) for c in classes):
            return False, "detector.sensitive_classes must index into detector.labels"

    if 'providers' in detector:
        providers = detector['providers']
        if not isinstance(providers, list) or not all(isinstance(p, str) for p in providers):
            return False, "detector.providers must be a list of strings"

    # Scan settings
    scan = config.get('scan') or {}
    if 'mode' in scan:
        try:
            ScanMode.parse(scan['mode'])
        except ValueError as e:
            return False, f"scan.mode: {e}"
    for key in ('sample_interval', 'binary_search_window'):
        if key in scan:
            value = scan[key]
            if not _is_number(value) or value <= 0:
                return False, f"scan.{key} must be a positive number"
    if 'binary_search_depth' in scan and not _is_positive_int(scan['binary_search_depth']):
        return False, "scan.binary_search_depth must be a positive integer"
    if 'human_check' in scan and scan['human_check'] not in VALID_HUMAN_CHECKS:
        return False, f"scan.human_check must be one of: {', '.join(VALID_HUMAN_CHECKS)}"

    # Optional server settings
    server = config.get('server') or {}
    if 'port' in server:
        port = server['port']
        if not _is_positive_int(port) or port > 65535:
            return False, "server.port must be an integer between 1 and 65535"
    if 'host' in server and not isinstance(server['host'], str):
        return False, "server.host must be a string"

    # Log settings
    if not isinstance(config['log_path'], str):
        return False, "log_path must be a string"
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2))


def _load_detector(cfg: Config) -> Tuple[DetectorRegistry, str]:
    if not cfg.detector.model:
        logging.error("No model configured (set detector.model or pass --model)")
        sys.exit(1)
    registry = DetectorRegistry()
    return registry, registry.create(cfg.detector)


def run_detect(cfg: Config, args: argparse.Namespace) -> int:
    """Detect on one image and print the thresholded detections."""
    conf = cfg.detector.conf_threshold if args.conf is None else args.conf
    iou = cfg.detector.iou_threshold if args.iou is None else args.iou

    registry, detector_id = _load_detector(cfg)
    try:
        result = detect_image(registry, detector_id, args.image, conf, iou)
    finally:
        registry.dispose_all()

    payload = result.to_dict(confidence_threshold=conf)
    if not args.debug:
        payload.pop("debugInfo", None)
    _print_json(payload)
    return 0


def run_scan(cfg: Config, args: argparse.Namespace) -> int:
    """Scan one video; Ctrl-C stops the scan and prints the partial result."""
    session = ScanSession(
        mode=ScanMode.parse(args.mode or cfg.scan.mode),
        sample_interval=cfg.scan.sample_interval if args.interval is None else args.interval,
        confidence_threshold=cfg.detector.conf_threshold if args.conf is None else args.conf,
    )

    registry, detector_id = _load_detector(cfg)
    previous = signal.signal(signal.SIGINT, lambda signum, frame: session.cancel())
    try:
        result = analyze_video(
            registry,
            detector_id,
            args.video,
            session=session,
            scan_config=cfg.scan,
        )
    finally:
        signal.signal(signal.SIGINT, previous)
        registry.dispose_all()

    payload = result.to_dict()
    if args.frames:
        payload["frames"] = [f.to_dict() for f in session.frames]
    _print_json(payload)
    return 0


def run_serve(cfg: Config, args: argparse.Namespace) -> int:
    """Serve the HTTP API until interrupted."""
    host = args.host or cfg.server.host
    port = args.port or cfg.server.port
    logging.info(f"Starting SafeScan API on {host}:{port}")
    try:
        uvicorn.run(create_app(cfg), host=host, port=port, log_level="info")
    finally:
        disposed = web_state.reset()
        logging.info(f"SafeScan API stopped ({disposed} detectors disposed)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='SafeScan - sensitive content detection')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--model', type=str, default=None,
                        help='Path to ONNX model (overrides detector.model)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    detect = subparsers.add_parser('detect', help='Detect sensitive content in an image')
    detect.add_argument('image', help='Image path or file:// URI')
    detect.add_argument('--conf', type=float, default=None, help='Confidence threshold')
    detect.add_argument('--iou', type=float, default=None, help='NMS IoU threshold')
    detect.add_argument('--debug', action='store_true', help='Include decoder debug info')

    scan = subparsers.add_parser('scan', help='Scan a video for sensitive content')
    scan.add_argument('video', help='Video path or file:// URI')
    scan.add_argument('--mode', type=str, default=None,
                      choices=[m.value for m in ScanMode], help='Scan mode')
    scan.add_argument('--interval', type=float, default=None, help='Sample interval in seconds')
    scan.add_argument('--conf', type=float, default=None, help='Confidence threshold')
    scan.add_argument('--frames', action='store_true', help='Include per-frame results')

    serve = subparsers.add_parser('serve', help='Run the HTTP API')
    serve.add_argument('--host', type=str, default=None)
    serve.add_argument('--port', type=int, default=None)

    return parser


def main(argv=None) -> int:
    """Main application function."""
    args = build_parser().parse_args(argv)

    raw = load_config(args.config)
    if args.model:
        raw.setdefault('detector', {})['model'] = args.model

    is_valid, error_msg = validate_config(raw)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    setup_logging(raw['log_path'], raw['log_level'])
    cfg = Config.from_dict(raw)

    commands = {
        'detect': run_detect,
        'scan': run_scan,
        'serve': run_serve,
    }
    try:
        return commands[args.command](cfg, args)
    except VisionError as e:
        logging.error(f"[{e.code}] {e}")
        return 1
    except (ImportError, OSError, ValueError) as e:
        logging.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
