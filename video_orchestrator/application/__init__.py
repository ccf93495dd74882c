"""Application layer: orchestration services and DTOs."""
