"""Shell history session viewer."""
