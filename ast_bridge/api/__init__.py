"""Capa HTTP del puente."""
