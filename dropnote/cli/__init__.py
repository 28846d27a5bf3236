# =============================================================================
# dropnote/cli/__init__.py: CLI Module Overview
# =============================================================================
#
# Command line access to the indexer:
#
#   python -m dropnote.cli scan   : one bounded historical scan, then exit
#   python -m dropnote.cli watch  : catch up from the checkpoint, then follow
#                                   new blocks until interrupted
#
# Both commands build their collaborators through dropnote.main, so the same
# Settings / config.yaml drive the CLI and embedded use.
# =============================================================================

"""CLI tools for the dropnote indexer."""
