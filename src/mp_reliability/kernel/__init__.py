"""Kernel – error taxonomy and clock port shared by every component."""
