"""Domain layer: video records, processing jobs and the webhook ledger."""
