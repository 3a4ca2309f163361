"""
Application layer - Use cases and business logic orchestration.

This layer contains:
- ApplicationStore (submission lifecycle and reads)
- LookupJoin (concurrent entity resolution + outcome mapping)
- LineageLocks (per-lineage serialization)
- EntityLookupService (session-per-lookup entity resolution)
"""
