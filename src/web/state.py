import threading
import time
from typing import Dict, List, Optional

from inference.registry import DetectorRegistry
from models.config import Config
from pipeline.engine import ScanSession


class SharedState:
    """
    Singleton holding state shared between HTTP requests: the detector
    registry, the effective configuration and the scans currently running.
    """
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SharedState, cls).__new__(cls)
                    cls._instance.registry = DetectorRegistry()
                    cls._instance.config = Config()
                    cls._instance.config_lock = threading.Lock()
                    cls._instance.scans = {}
                    cls._instance.scans_lock = threading.Lock()
                    cls._instance.start_time = time.time()
        return cls._instance

    def set_config(self, config: Config) -> None:
        with self.config_lock:
            self.config = config

    def get_config(self) -> Config:
        with self.config_lock:
            return self.config

    def register_scan(self, session: ScanSession) -> bool:
        """Track a running scan; returns False if the id is already in use."""
        with self.scans_lock:
            if session.scan_id in self.scans:
                return False
            self.scans[session.scan_id] = session
            return True

    def unregister_scan(self, scan_id: str) -> None:
        with self.scans_lock:
            self.scans.pop(scan_id, None)

    def get_scan(self, scan_id: str) -> Optional[ScanSession]:
        with self.scans_lock:
            return self.scans.get(scan_id)

    def active_scan_ids(self) -> List[str]:
        with self.scans_lock:
            return list(self.scans)

    def reset(self) -> int:
        """Cancel running scans and dispose every detector; returns detectors disposed."""
        with self.scans_lock:
            sessions: Dict[str, ScanSession] = dict(self.scans)
            self.scans.clear()
        for session in sessions.values():
            session.cancel()
        return self.registry.dispose_all()


# Global instance
state = SharedState()
