"""
gemini package

Gemini AI integration for automatic hair detection.
"""

from gemini.detections import parse_detections
from gemini.worker import DetectWorker, DetectionResult, detect_annotations

__all__ = ["DetectWorker", "DetectionResult", "detect_annotations", "parse_detections"]
