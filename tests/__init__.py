"""
Tests for the PetPulse triage backend.

These cover the profile normalizer, prompt rendering, the Gemini gateway
(with the SDK mocked), each stage handler against a fake gateway, and the
HTTP routes.
"""
