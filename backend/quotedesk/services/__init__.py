"""
Business logic services package.

WHY: Services contain business logic separated from API routes and data access,
following the three-layer architecture (API → Service → DAO). The pricing,
versioning, validity and numbering modules are pure functions shared by
every service.
"""
