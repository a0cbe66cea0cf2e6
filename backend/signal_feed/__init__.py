"""Feed-side adapters around the signal engine.

Settings, preset loading, tick-to-candle building, the per-bar signal
service and display payloads. No networking lives here.
"""
