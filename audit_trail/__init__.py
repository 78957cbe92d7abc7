"""Audit trail and suspicious activity detection service."""
