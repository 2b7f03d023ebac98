"""
Note builder boundary.

Design intent:
- Assemble copy-ready review notes from checked catalog options.
- Keep generation pure and selection ordering user-driven.
- Let reviewers override generated text without losing selections.
"""
