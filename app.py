"""Streamlit entry point for the GAS Script Assistant.

`streamlit run app.py` and `streamlit run streamlit_app.py` start the same UI.
"""

from streamlit_app import main


if __name__ == "__main__":
    main()
