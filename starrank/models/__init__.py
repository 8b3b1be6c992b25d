from .logistic import LogisticRegressionClassifier

__all__ = ["LogisticRegressionClassifier"]
