"""PawLog - Dog walk, meal and snack tracker backed by Firestore."""
