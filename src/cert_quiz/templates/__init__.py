"""Packaged configuration templates for cert-quiz."""
