"""Volunteer Tracker package.

This package is organized by feature modules (attendance, corrections, review, ...)
with a thin Flask controller layer on top of service/repository layers.
"""
