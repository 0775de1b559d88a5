"""
specmock - mock HTTP server driven by OpenAPI specifications

Loads OpenAPI 2.0/3.x documents and static response files from a services
directory, builds HTTP routes for them and synthesizes realistic payloads
from schemas, contexts and fake data generators.
"""

__version__ = '1.0.0'
