"""
Tests for the benefits intake submission engine

Tests are organized by layer:
- test_value_objects.py, test_entities.py, test_results.py: domain rules
- test_unit_of_work.py, test_application_repository.py: persistence
- test_lookup_join.py, test_lineage_locks.py: concurrency
- test_application_store_*.py: submission, drafts and reads end to end
"""
