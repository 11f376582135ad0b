"""Fault detection: resource snapshot in, fault records out."""

from kubedoctor.detector.base import Detector
from kubedoctor.detector.engine import SUPPORTED_KINDS, detect
from kubedoctor.detector.pod import describe_exit_code

__all__ = ["SUPPORTED_KINDS", "Detector", "describe_exit_code", "detect"]
