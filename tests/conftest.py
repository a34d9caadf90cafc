import os

# Qt needs a platform plugin even for QObject/QTimer tests on headless CI
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
