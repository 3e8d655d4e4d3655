"""services/ -- Flow functions invoked by the HTTP layer.

Each service composes access guards, store primitives and the audit log,
and reports failures as core.errors types. Nothing here imports from api/.
"""
