"""Service layer: I/O-bound work kept out of core/.

Modules:
    streamer     Audio file lookup and byte-window streaming.
    http         Retrying, circuit-broken JSON client for provider APIs.
    jamendo      Jamendo API v3 client.
    free_music   Provider dispatch and multi-provider search.
    tracks       Normalized external track records.
    errors       Provider failure types.
"""
