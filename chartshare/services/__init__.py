"""
Access Control & Governance Engine
Rate limiting, role resolution, sharing, access requests and share links
"""
