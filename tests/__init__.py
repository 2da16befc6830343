"""
Test suite for the MedBook backend.

Contains API-level tests for authentication, doctor profiles and prescriptions.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
