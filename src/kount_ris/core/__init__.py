"""Core pipeline pieces: request containers, validation, transports and parsing.

Nothing in here knows about configuration sources; KountRisClient wires these
together and kount_ris.config builds clients from the environment.
"""
