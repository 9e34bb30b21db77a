# Simulator request handlers
