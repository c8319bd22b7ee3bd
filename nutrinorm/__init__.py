"""
Food & nutrition normalization pipeline.

Turns noisy detection labels, OCR label text and barcode payloads into
bounded, confidence-scored nutrition reports with deduplicated risk flags.

Structure:
- domain/: pure models, tables and algorithms (no I/O)
- application/: orchestration of domain services over external backends
- infrastructure/: provider health gating, HTTP probe, OFF normalization, metrics
"""

__version__ = "1.0.0"
