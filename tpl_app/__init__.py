# tpl_app/__init__.py
"""
The Pinball Lounge application package.
"""
