"""
Test suite for eventgallery.

- Unit tests for models, storage adapters, the metadata store and services
- Integration tests spanning adapter, store and orchestrator
"""
