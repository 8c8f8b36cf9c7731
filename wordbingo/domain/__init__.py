"""Domain layer (pure logic).

- Keep game rules, round lifecycle and scoring here.
- Avoid I/O: no websockets, no FastAPI, no relay envelopes.
- Session events are delivered synchronously through the EventBus.
"""
