"""
Aurora Core - Live show orchestration

Drives lights, screens and audio devices at a venue: binds devices to
handlers, runs one show mode per slot (Centurion tapes, time trail races)
and computes moving head motion for the lights.

Modules:
    context: AppContext, owner of all long-lived collaborators
    handler_manager: Device -> handler bindings and connectivity
    modes: ModeManager and the show modes
    effects: Lights effects and motion maths
    server: Flask-SocketIO device endpoint
"""

__version__ = '1.0.0'
