"""Domain layer: exceptions, value objects and provider ports."""
