"""
Arena - Tournament Registration API for a mobile esports platform

Responsibilities:
- Player accounts (registration, login, starting balance)
- Teams
- Tournament listing and paid entry (join)
- News feed
- Aggregate views (leaderboard)
"""
