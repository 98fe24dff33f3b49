"""Story clustering and multi-language summary localization."""
