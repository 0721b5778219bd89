"""
Core utilities — domain exceptions shared by the monitor, ingestion service and API.
"""
