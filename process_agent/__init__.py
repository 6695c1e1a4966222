"""Configuration and command-line redaction core of the process agent."""
