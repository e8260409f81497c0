"""Read-only HTTP view of the room display."""
