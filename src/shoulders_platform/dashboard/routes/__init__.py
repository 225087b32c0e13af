"""Dashboard API routes"""
