"""
Trust Witness Server
Trust scoring, provenance tracking and decision accountability for autonomous agents
"""
