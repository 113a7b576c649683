"""
clinicslots - scheduling and availability engine for clinic calendars.
"""

__version__ = "0.1.0"
