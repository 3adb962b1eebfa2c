"""Core agent, protocol and external tool server components."""
