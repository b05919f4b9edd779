"""swiftgate: OpenStack Swift API gateway over pluggable blob stores."""
