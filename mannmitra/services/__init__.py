"""MannMitra services.

- safety_service: crisis-risk assessment and escalation, run on every
  chat message before it reaches the AI companion
"""
