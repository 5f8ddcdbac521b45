"""
Meta Ads Tracker

Completes Meta's OAuth 2.0 authorization-code flow on behalf of advertisers and keeps a record of the resulting
long-lived Graph API credentials.

Key Components:
- app: aiohttp web application, configuration, metrics and request handlers
- graph: Outbound Graph API calls (code exchange, long-lived token exchange, token validation)
- exchange: The credential exchange pipeline that composes the Graph API calls and persists the result
- store: Append-only credential store on SQLAlchemy's async engine
- model: Database models and read-side views

Authorization Flow:
1. A client opens the consent dialog URL served by GET /meta/auth/url
2. Meta redirects the user back to GET /meta/auth/callback with an authorization code
3. The code is exchanged for a short-lived token, then for a long-lived token
4. The long-lived token is checked against /me/adaccounts
5. The token and the ad accounts it can see are stored and returned to the caller

Stored credentials can be listed (tokens redacted) and fetched by id.
"""
