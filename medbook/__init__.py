"""
MedBook

FastAPI back-end for a medical appointment service: role-based authentication,
doctor profiles and prescriptions.
"""

__version__ = "1.0.0"
