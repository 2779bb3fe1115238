"""Alert delivery over messaging channels."""
