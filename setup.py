from setuptools import setup

setup(name = 'pyavis',
      version = '0.1.0',
      description = '''Avian Survey comparison (AVIS) tools for contrasting
human point-count surveys with passive acoustic monitoring across a forest
restoration gradient.''',
      author = 'pyavis developers',
      license = 'MIT',
      packages = ['pyavis',],
      python_requires= '>=3.9',
      install_requires=["numpy >= 1.22",
                        "pandas >= 1.4",
                        "matplotlib >= 3.5",
                        "statsmodels >= 0.13",
                        "scipy >= 1.8",
                        "h5py",
                        "tables",
                        "tqdm"],
      extras_require = {'test': ["pytest"]},
      zip_safe = False
      )
