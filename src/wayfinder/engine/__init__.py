"""Runtime engine: condition evaluation, navigation, orbs and state mutation.

Everything except wayfinder.engine.session is pure: functions take an
explicit GameState and return values or new states.
"""
