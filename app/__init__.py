"""
MedCare Appointment System

A FastAPI backend where patients request doctor appointments, admins approve
or reject them (one approved booking per doctor, date and slot), and patients
review their completed visits.
"""

__version__ = "1.0.0"
