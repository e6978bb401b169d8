"""
Models package: SQLAlchemy tables (db) and Pydantic schemas (schemas).
"""
