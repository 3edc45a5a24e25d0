"""Classroom and quiz management REST API."""
