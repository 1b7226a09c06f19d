"""Suivi des médicaments : stock, prescriptions et administrations."""

__version__ = "1.0.0"
