"""Opérateur Minikura : réconciliation des serveurs et proxys vers Kubernetes."""
