from analysis.behavior import BehaviorAnalyzer, analyze_events

__all__ = ["BehaviorAnalyzer", "analyze_events"]
