"""
Domain models, rule validators and the rule engine.
"""
