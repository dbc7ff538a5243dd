"""
osgi-forge - integration test package

File: tests/integration/__init__.py
Last updated: 2026-10-18

Purpose
- Test package marker for tests that drive the CLI in a subprocess.
"""
