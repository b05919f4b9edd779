"""Swift request handlers for swiftgate."""
