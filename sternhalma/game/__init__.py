"""Rules engine: coordinates, topology, move generation and state transitions."""
