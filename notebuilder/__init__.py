"""
Note builder service package.

Design intent:
- Serve a single-page builder for formatted review notes.
- Keep domain modules (note) independent from the HTTP surface (api).
"""
