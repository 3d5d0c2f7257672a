"""
Example, generated gradient code of z = x + y
"""

import adgen

if __name__ == "__main__":
    adgen.start_recording()
    x = adgen.Scalar("x")
    y = adgen.Scalar("y")
    z = x + y
    adgen.stop_recording()
    adgen.set_gradient(z, "1")
    adgen.run_backward()
    print(adgen.generated_code())
