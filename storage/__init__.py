"""
Storage Package.

Local persistence for normalized proofs and per-chain checkpoints.

Modules:
- database: engine, sessions and transaction scope
- models/: location_proofs and chain_checkpoints tables
- repositories/: store contracts and their SQL, in-memory and
  two-tier implementations
"""
