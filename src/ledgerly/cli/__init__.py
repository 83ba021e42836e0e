"""Ledgerly command line interface."""
