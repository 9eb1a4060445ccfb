"""
FastAPI routers for the import API.
"""
