"""cadence core: models, errors, logging, settings, execution log, scheduling."""
