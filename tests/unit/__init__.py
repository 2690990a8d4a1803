"""Unit tests for the registry core, models, event log and publisher."""
