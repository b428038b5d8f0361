"""
Background removal web service package.

Exposes the remove.bg provider client, the local fallback transforms, the
request pipeline, and the FastAPI application factory.
"""

