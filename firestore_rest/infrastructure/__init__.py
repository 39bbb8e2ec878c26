"""Infrastructure layer: Firestore REST transport, auth sessions and codecs."""
