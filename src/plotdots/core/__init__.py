"""Core runtime: settings, logging, exceptions and the SPC engine."""
