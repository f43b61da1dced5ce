"""Scan algorithms — one per agent type.

- patrol: decay, broken lineage, orphaned contradictions
- integrity: lineage chains, cross-references, authority drift
- hypothesis_tester: evidence vs. stated confidence
- debate_simulator: tension between records sharing a tag
- freshness: temporal decay in fast-moving domains
- synthesis: cross-domain analogies and bridge proposals
"""
