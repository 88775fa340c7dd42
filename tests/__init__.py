"""
OANDA Stream Test Suite

Test Categories:
- Models: Quote/Tick/Transaction accessors and decoding
- Timestamps: RFC3339 parsing
- Session: line reading, run loop states, error taxonomy
- Clients: endpoints, dispatch filters, end-to-end feeds
- Settings and safe logging

Run all tests:
    pytest

Run specific test file:
    pytest tests/test_tick.py
"""

__version__ = "1.0.0"
