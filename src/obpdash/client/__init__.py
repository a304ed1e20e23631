"""HTTP access to the banking API: fetchers, gateway and the API facade."""
