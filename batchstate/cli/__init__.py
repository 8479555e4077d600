"""Command line interface for inspecting batchstate checkpoints."""
