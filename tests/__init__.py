"""Calendar Engine Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - recurrence/: Recurrence expansion and rule descriptions
  - availability/: Busy time, conflict detection, multi-party analysis
  - scheduling/: Working hours, booking slots, meeting-time optimizer
- integration/: SchedulingEngine against in-memory collaborators

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/scheduling/

    # With coverage
    pytest --cov=calendar_engine --cov-report=term-missing
"""
