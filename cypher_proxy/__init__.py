"""
Cypher proxy — authenticated HTTP gateway for running Cypher against Neo4j.
"""
