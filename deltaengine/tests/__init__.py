"""
Test suite for the delta capture and replay engine.

Focus areas:
- Codec determinism and strict decoding
- Delta log ordering
- Trigger capture on SQLite
- Replay determinism and failure semantics
"""
