"""Key-value store adapters.

Throttling and usage metering keep all of their state in a shared store so
that any number of stateless API processes enforce the same limits. The API
depends on the abstract contract; Redis is the production backend and the
in-memory backend serves local development and tests.
"""
