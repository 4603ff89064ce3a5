"""
Chat pipeline: intent detection, product search, conversation state,
escalation, conversation flows and the reply handler used by the chat routes.
"""
