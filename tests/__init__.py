from pathlib import Path

from nftmarket import env

env.set_test()


TEST_CONFIGS = Path(__file__).parent / 'configs'

ETHER = 10**18
FEE_PERCENT = 1
URI = 'Sample URI'

DEPLOYER = '0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266'
ALICE = '0x70997970C51812dc3A010C7d01b50e0d17dc79C8'
BOB = '0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC'
CAROL = '0x90F79bf6EB2c4f870365E785982E1f101E93b906'

NFT_ADDRESS = '0x5FbDB2315678afecb367f032d93F642f64180aa3'
MARKETPLACE_ADDRESS = '0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512'
