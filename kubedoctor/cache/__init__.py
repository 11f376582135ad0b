"""Diagnosis caching."""

from kubedoctor.cache.diagnosis_cache import CacheEntry, DiagnosisCache
from kubedoctor.cache.fingerprint import derive_issue_category, fingerprint

__all__ = ["CacheEntry", "DiagnosisCache", "derive_issue_category", "fingerprint"]
