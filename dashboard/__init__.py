"""
Dashboard API and print services for the purchasing back office.
"""
