"""eggcarton -- command-line client for the EggCarton secret vault.

Secrets ("eggs") live behind a remote API guarded by an OAuth2 identity
provider. This package authenticates the user with the Authorization Code
flow with PKCE, keeps the resulting tokens fresh across invocations, and
exposes commands to store, read, delete, and inject secrets into a child
process.

Typical workflow::

    egg login                 # browser sign-in, tokens saved locally
    egg lay api_key s3cr3t    # store a secret
    egg hatch -- npm start    # run a command with secrets as env vars

Modules:
    app: Typer application and CLI entry point.
    auth: PKCE login flow, token exchange, lifecycle policy, session.
    client: HTTP client for the secret API.
    config: Settings resolution and on-disk layout.
    exceptions: Exception hierarchy with exit-code mapping.
    models: Pydantic models shared across the package.
    output: stdout/stderr formatting with Rich support.
    runner: Secret injection into subprocesses.
"""

__version__ = "0.3.0"
