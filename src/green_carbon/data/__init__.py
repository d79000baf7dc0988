"""Packaged reference data for :mod:`green_carbon`."""
