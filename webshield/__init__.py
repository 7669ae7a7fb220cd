"""
WebShield - Website Security & NIS2 Compliance
===============================================

Dashboard backend for superficial website security scans, a fixed
NIS2 compliance questionnaire, and PDF reporting, gated by plan.
"""

__version__ = "1.0.0"
