"""Long-running services."""

from meme_radar.services.scan_service import ScanService

__all__ = ["ScanService"]
