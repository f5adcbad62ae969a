"""
Library package for intake-wizard.

This package holds the headless form wizard (state store, layout, validator,
controller) and the submission relay service.

- Runtime package: `src/intake_wizard/`
- Serverless entrypoint: `api/index.py`
"""
