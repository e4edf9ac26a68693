"""
Hospital Management API

A FastAPI-based backend for running a hospital front desk: patients, doctors,
departments, appointment scheduling, prescriptions, lab requests and
contact/chat support, with role-based access control.
"""

__version__ = "1.0.0"
