"""
Lotdesk web dashboard
"""
