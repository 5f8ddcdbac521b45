"""
Graph API Integration

Outbound calls to Meta's Graph API, the identity provider and protected resource this service integrates with.

- client.py: The three token-exchange requests and the consent dialog URL builder
- models.py: Typed views of the provider's token and ad account responses
"""
