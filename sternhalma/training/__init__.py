"""Self-play evolutionary tuning of evaluation genomes."""
