"""
Core utilities: error taxonomy shared by the analyzer adapters, the pure
scoring/hashing/encoding stages, the orchestrator and the API server.
"""
