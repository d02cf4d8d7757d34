"""Adaptadores externos."""
