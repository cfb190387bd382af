"""PR-driven AI code generation pipeline stages."""
