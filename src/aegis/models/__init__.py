"""Data models — scores, quality assessments, privacy and compliance records."""
