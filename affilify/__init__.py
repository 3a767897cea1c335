"""Affiliate website generation service."""
